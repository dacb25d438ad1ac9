"""
Google sign-up service.

Exposes the app factory (create_app), settings (Settings), the identity
provider protocol and its Google implementation, and the session state types.
"""

from .app import create_app
from .config import Settings
from .google import GoogleIdentityProvider
from .protocol import AuthorizationRequest, IdentityClaims, IdentityProvider
from .session import Anonymous, Authenticated, PendingRegistration, load_state, store_state

__all__ = [
    "create_app",
    "Settings",
    "GoogleIdentityProvider",
    "AuthorizationRequest",
    "IdentityClaims",
    "IdentityProvider",
    "Anonymous",
    "Authenticated",
    "PendingRegistration",
    "load_state",
    "store_state",
]
