"""
Error taxonomy and FastAPI exception handlers.

Provider, storage and missing-precondition failures all surface as an HTML
error page with a distinguishable status code instead of a stack trace.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.templating import Jinja2Templates

logger = structlog.get_logger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid."""


class SignupError(Exception):
    """Base exception for request-time failures."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class ProviderError(SignupError):
    """Raised when Google (the identity provider) fails or rejects the request."""

    def __init__(self, message: str = "Identity provider error", code: str = "PROVIDER_ERROR", status_code: int = 502):
        super().__init__(message, code=code, status_code=status_code)


class CodeExchangeError(ProviderError):
    """The authorization code was invalid, expired, already used, or Google was unreachable."""

    def __init__(self, message: str = "Could not exchange the authorization code"):
        super().__init__(message, code="CODE_EXCHANGE_FAILED", status_code=502)


class IdentityVerificationError(ProviderError):
    """The ID token failed signature, issuer, audience or expiry checks."""

    def __init__(self, message: str = "Could not verify your Google identity"):
        super().__init__(message, code="IDENTITY_VERIFICATION_FAILED", status_code=401)


class AuthorizationDeniedError(ProviderError):
    """Google redirected back with an error parameter or without a code."""

    def __init__(self, message: str = "Sign-in was cancelled or denied"):
        super().__init__(message, code="AUTHORIZATION_DENIED", status_code=400)


class StorageError(SignupError):
    """Raised when the database cannot be reached or a statement fails."""

    def __init__(self, message: str = "Storage error", code: str = "STORAGE_ERROR", status_code: int = 503):
        super().__init__(message, code=code, status_code=status_code)


class DuplicateRecordError(StorageError):
    """A unique constraint rejected the insert."""

    def __init__(self, message: str = "This account is already registered"):
        super().__init__(message, code="DUPLICATE_RECORD", status_code=409)


class MissingRegistrationError(SignupError):
    """The registration form was submitted without a pending sign-in."""

    def __init__(self, message: str = "Please sign in with Google before submitting your details"):
        super().__init__(message, code="REGISTRATION_NOT_STARTED", status_code=400)


def add_exception_handlers(app: FastAPI, templates: Jinja2Templates, debug: bool = False) -> None:
    """Register HTML error handlers on ``app``."""

    def _render(request: Request, status_code: int, message: str, code: Optional[str]):
        return templates.TemplateResponse(
            request,
            "error.html",
            {"status_code": status_code, "message": message, "code": code},
            status_code=status_code,
        )

    @app.exception_handler(SignupError)
    async def signup_error_handler(request: Request, exc: SignupError):
        logger.warning(
            "request_failed",
            code=exc.code,
            status_code=exc.status_code,
            error=exc.message,
            path=request.url.path,
        )
        return _render(request, exc.status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        logger.info("invalid_form", fields=fields, path=request.url.path)
        return _render(request, 422, "Please fill in every field: " + ", ".join(fields), "VALIDATION_ERROR")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
        message = str(exc) if debug else "An internal error occurred. Please try again later."
        return _render(request, 500, message, "INTERNAL_ERROR")
