"""
Protocol for the identity provider used by the auth router.

GoogleIdentityProvider is the production implementation; tests plug in a fake
with the same three operations.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class IdentityClaims:
    """The verified claims the app needs from an ID token."""

    subject_id: str
    name: str
    email: str


@dataclass(frozen=True)
class AuthorizationRequest:
    """Where to send the browser, and the state value the callback must echo back."""

    url: str
    state: str


@runtime_checkable
class IdentityProvider(Protocol):
    """Protocol for an OAuth2/OIDC identity provider."""

    async def build_authorization_url(self) -> AuthorizationRequest:
        """Return the provider URL for sign-in and the state bound to it."""
        ...

    async def exchange_code(self, code: str) -> dict:
        """Exchange an authorization code for a token set."""
        ...

    async def verify_identity_token(self, token: dict, expected_audience: str) -> IdentityClaims:
        """Verify the token set's ID token and return its claims."""
        ...
