"""
Settings for the sign-up service.

All values come from environment variables (main.py loads .env first with
python-dotenv). Settings is built once at startup and handed to the pieces
that need it: the Google client, the database and the session middleware.

Required:
  - CLIENT_ID
  - CLIENT_SECRET

Optional:
  - REDIRECT_URI (default: http://localhost:3001/oauth2callback)
  - DBCONFIG_HOST / DBCONFIG_PORT / DBCONFIG_USER / DBCONFIG_PASSWORD / DBCONFIG_DATABASE
  - DATABASE_URL (overrides the DBCONFIG_* values, e.g. sqlite+aiosqlite:///./dev.db)
  - SESSION_SECRET (default "change-me" is for dev only)
  - SESSION_HTTPS_ONLY, DEBUG, LOG_JSON, PORT
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from sqlalchemy.engine import URL

from google_signup.errors import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Configuration needed for Google sign-in, the user store and sessions."""

    client_id: str
    client_secret: str
    redirect_uri: str = "http://localhost:3001/oauth2callback"

    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "signup"
    database_url_override: Optional[str] = None

    session_secret: str = "change-me"
    session_https_only: bool = False

    debug: bool = False
    log_json: bool = False
    port: int = 3001

    @property
    def database_url(self) -> Union[str, URL]:
        if self.database_url_override:
            return self.database_url_override
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ

        client_id = env.get("CLIENT_ID", "").strip()
        client_secret = env.get("CLIENT_SECRET", "").strip()

        missing = [k for k, v in [("CLIENT_ID", client_id), ("CLIENT_SECRET", client_secret)] if not v]
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: "
                + ", ".join(missing)
                + ". Set them in your environment or .env file before starting the app."
            )

        try:
            db_port = int(env.get("DBCONFIG_PORT", "5432"))
            port = int(env.get("PORT", "3001"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=env.get("REDIRECT_URI", "http://localhost:3001/oauth2callback").strip(),
            db_host=env.get("DBCONFIG_HOST", "localhost").strip(),
            db_port=db_port,
            db_user=env.get("DBCONFIG_USER", "postgres").strip(),
            db_password=env.get("DBCONFIG_PASSWORD", ""),
            db_name=env.get("DBCONFIG_DATABASE", "signup").strip(),
            database_url_override=env.get("DATABASE_URL") or None,
            session_secret=env.get("SESSION_SECRET", "change-me"),
            session_https_only=_flag(env.get("SESSION_HTTPS_ONLY")),
            debug=_flag(env.get("DEBUG")),
            log_json=_flag(env.get("LOG_JSON")),
            port=port,
        )
