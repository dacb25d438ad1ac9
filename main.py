"""
FastAPI app: Google OAuth sign-in with first-login registration.

Decisions:
- .env is loaded before building Settings so CLIENT_ID, CLIENT_SECRET,
  DBCONFIG_* and SESSION_SECRET are available.
- Settings is built once here and passed to the app factory; nothing reads
  the environment after startup.
- Session secret from SESSION_SECRET env; default "change-me" is for dev only.

Run with: uvicorn main:app --port 3001
"""

from dotenv import load_dotenv

from google_signup import Settings, create_app
from google_signup.logging_setup import setup_logging

load_dotenv()

settings = Settings.from_env()
setup_logging(settings)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
