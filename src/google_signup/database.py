"""
Database accessor.

One pooled async engine per process. Every call to ``query`` runs a single
statement on a connection checked out for that call only; the connection goes
back to the pool on success and on failure. Parameters are always bound.
"""

from typing import Any, List, Mapping, Optional, Union

import structlog
from sqlalchemy import MetaData
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from google_signup.errors import DuplicateRecordError, StorageError

logger = structlog.get_logger(__name__)


class Database:
    """Thin wrapper around an ``AsyncEngine`` exposing single-statement queries."""

    def __init__(self, url: Union[str, URL], echo: bool = False):
        url = make_url(url)
        options: dict = {"echo": echo}
        if url.get_backend_name() != "sqlite":
            options.update(pool_pre_ping=True, pool_size=5, max_overflow=10, pool_recycle=3600)
        self.engine: AsyncEngine = create_async_engine(url, **options)

    async def query(
        self, statement: Executable, params: Optional[Mapping[str, Any]] = None
    ) -> Union[List[Mapping[str, Any]], int]:
        """
        Execute one statement and return its rows, or the affected row count
        for statements that return none.

        Runs in its own transaction: committed on success, rolled back on error.
        """
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(statement, params or {})
                if result.returns_rows:
                    return [dict(row) for row in result.mappings().all()]
                return result.rowcount
        except IntegrityError as exc:
            logger.warning("integrity_error", error=str(exc.orig))
            raise DuplicateRecordError() from exc
        except SQLAlchemyError as exc:
            logger.error("query_failed", error=str(exc))
            raise StorageError("The user store is unavailable, please try again later") from exc

    async def create_schema(self, metadata: MetaData) -> None:
        """Create any missing tables described by ``metadata``."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError("Could not create the database schema") from exc

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
