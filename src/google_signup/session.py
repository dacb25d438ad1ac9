"""
Session state for the sign-in flow.

The session holds exactly one of three states under the ``auth`` key:

- Anonymous: nothing stored.
- PendingRegistration: Google claims waiting for the details form.
- Authenticated: the Google id of a registered user.

Writing a state replaces whatever was there, so a session can never be both
pending and authenticated.

The OAuth state for an in-flight sign-in lives under its own key, next to
whichever of the three states is current.
"""

from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Request

SESSION_KEY = "auth"
OAUTH_STATE_KEY = "oauth_state"


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class PendingRegistration:
    google_id: str
    display_name: str
    email: str


@dataclass(frozen=True)
class Authenticated:
    user_id: str


SessionState = Union[Anonymous, PendingRegistration, Authenticated]


def load_state(request: Request) -> SessionState:
    """Read the current state; anything unrecognised counts as Anonymous."""
    raw = request.session.get(SESSION_KEY)
    if not isinstance(raw, dict):
        return Anonymous()

    kind = raw.get("kind")
    if kind == "pending":
        fields = (raw.get("google_id"), raw.get("display_name"), raw.get("email"))
        if all(isinstance(f, str) for f in fields) and fields[0]:
            return PendingRegistration(*fields)
    elif kind == "authenticated":
        user_id = raw.get("user_id")
        if isinstance(user_id, str) and user_id:
            return Authenticated(user_id)
    return Anonymous()


def store_state(request: Request, state: SessionState) -> None:
    """Replace the session state with ``state``."""
    if isinstance(state, PendingRegistration):
        request.session[SESSION_KEY] = {
            "kind": "pending",
            "google_id": state.google_id,
            "display_name": state.display_name,
            "email": state.email,
        }
    elif isinstance(state, Authenticated):
        request.session[SESSION_KEY] = {"kind": "authenticated", "user_id": state.user_id}
    else:
        request.session.pop(SESSION_KEY, None)


def clear(request: Request) -> None:
    request.session.clear()


def remember_oauth_state(request: Request, state: str) -> None:
    """Keep the state sent to Google so the callback can check it."""
    request.session[OAUTH_STATE_KEY] = state


def pop_oauth_state(request: Request) -> Optional[str]:
    """Take the pending OAuth state out of the session; each value is good for one callback."""
    state = request.session.pop(OAUTH_STATE_KEY, None)
    return state if isinstance(state, str) and state else None
