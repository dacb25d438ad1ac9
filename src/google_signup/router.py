"""
FastAPI auth router: sign-in, OAuth callback, registration form, home, logout.

The flow is Anonymous -> (Google) -> PendingRegistration for new identities or
Authenticated for known ones; PendingRegistration becomes Authenticated once
the details form is stored.
"""

import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from google_signup.errors import AuthorizationDeniedError, MissingRegistrationError
from google_signup.protocol import IdentityProvider
from google_signup.session import (
    Anonymous,
    Authenticated,
    PendingRegistration,
    clear,
    load_state,
    pop_oauth_state,
    remember_oauth_state,
    store_state,
)
from google_signup.users import User, UserRepository

logger = structlog.get_logger(__name__)


def create_auth_router(
    provider: IdentityProvider,
    users: UserRepository,
    templates: Jinja2Templates,
    client_id: str,
) -> APIRouter:
    """Create an APIRouter with the sign-in and registration endpoints."""
    router = APIRouter()

    @router.get("/", name="index")
    async def index(request: Request):
        return templates.TemplateResponse(request, "index.html")

    @router.get("/signin")
    async def signin(request: Request):
        """Redirect the user to Google's account chooser."""
        authorization = await provider.build_authorization_url()
        remember_oauth_state(request, authorization.state)
        logger.info("signin_redirect")
        return RedirectResponse(url=authorization.url, status_code=302)

    @router.get("/oauth2callback")
    async def oauth2callback(
        request: Request,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
    ):
        """Exchange the code, verify the identity and route new users to the details form."""
        expected_state = pop_oauth_state(request)
        if error or not code:
            logger.info("authorization_denied", error=error)
            raise AuthorizationDeniedError()
        if not expected_state or not state or not secrets.compare_digest(state, expected_state):
            logger.warning("oauth_state_mismatch")
            raise AuthorizationDeniedError("Sign-in could not be verified, please try again")

        token = await provider.exchange_code(code)
        claims = await provider.verify_identity_token(token, client_id)

        user = await users.find_by_google_id(claims.subject_id)
        if user is None:
            store_state(request, PendingRegistration(claims.subject_id, claims.name, claims.email))
            logger.info("new_identity", google_id=claims.subject_id)
            return RedirectResponse(url="/additional-info", status_code=302)

        store_state(request, Authenticated(user.google_id))
        logger.info("returning_user", google_id=user.google_id)
        return RedirectResponse(url="/home", status_code=302)

    @router.get("/additional-info")
    async def additional_info(request: Request):
        return templates.TemplateResponse(request, "additional_info.html")

    @router.post("/submit-info")
    async def submit_info(
        request: Request,
        location: str = Form(...),
        mobile: str = Form(...),
        address: str = Form(...),
        zip_code: str = Form(..., alias="zip"),
    ):
        """Store the new user from the pending claims plus the form fields."""
        state = load_state(request)
        if not isinstance(state, PendingRegistration):
            raise MissingRegistrationError()

        await users.create(
            User(
                google_id=state.google_id,
                display_name=state.display_name,
                email=state.email,
                location=location,
                mobile_number=mobile,
                address=address,
                zip=zip_code,
            )
        )
        store_state(request, Authenticated(state.google_id))
        logger.info("user_registered", google_id=state.google_id)
        return RedirectResponse(url="/home", status_code=302)

    @router.get("/home")
    async def home(request: Request):
        """Welcome page; only for an authenticated session whose user still exists."""
        state = load_state(request)
        if not isinstance(state, Authenticated):
            return RedirectResponse(url="/", status_code=302)

        user = await users.find_by_google_id(state.user_id)
        if user is None:
            logger.info("home_unknown_user", google_id=state.user_id)
            store_state(request, Anonymous())
            return RedirectResponse(url="/", status_code=302)

        return templates.TemplateResponse(request, "home.html", {"user": user})

    @router.get("/logout")
    async def logout(request: Request):
        """Clear session and redirect to the sign-in page."""
        clear(request)
        return RedirectResponse(url="/", status_code=302)

    return router
