"""
Application factory.

Wires settings, logging, the session middleware, the user store and the
Google provider into a FastAPI app. The database pool lives for the lifetime
of the app: the schema is created on startup and the pool disposed on
shutdown.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from google_signup.config import Settings
from google_signup.database import Database
from google_signup.errors import add_exception_handlers
from google_signup.google import GoogleIdentityProvider
from google_signup.logging_setup import log_requests
from google_signup.protocol import IdentityProvider
from google_signup.router import create_auth_router
from google_signup.users import UserRepository, metadata

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings,
    provider: Optional[IdentityProvider] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build the app. ``provider`` and ``database`` default to Google and the configured URL."""
    provider = provider or GoogleIdentityProvider(settings)
    database = database or Database(settings.database_url, echo=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.create_schema(metadata)
        logger.info("startup", redirect_uri=settings.redirect_uri)
        yield
        await database.dispose()
        logger.info("shutdown")

    app = FastAPI(title="Google Sign-up", lifespan=lifespan, debug=settings.debug)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.session_https_only,
    )
    app.middleware("http")(log_requests)

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    add_exception_handlers(app, templates, debug=settings.debug)

    app.state.settings = settings
    app.state.database = database
    app.include_router(create_auth_router(provider, UserRepository(database), templates, settings.client_id))
    return app
