import pytest
from starlette.requests import Request

from google_signup.session import (
    OAUTH_STATE_KEY,
    SESSION_KEY,
    Anonymous,
    Authenticated,
    PendingRegistration,
    clear,
    load_state,
    pop_oauth_state,
    remember_oauth_state,
    store_state,
)


def make_request(session=None):
    return Request({"type": "http", "session": {} if session is None else session})


def test_empty_session_is_anonymous():
    assert load_state(make_request()) == Anonymous()


def test_pending_registration_round_trip():
    request = make_request()
    store_state(request, PendingRegistration("g-1", "Ada", "ada@x.com"))

    assert load_state(request) == PendingRegistration("g-1", "Ada", "ada@x.com")


def test_authenticated_replaces_pending():
    request = make_request()
    store_state(request, PendingRegistration("g-1", "Ada", "ada@x.com"))
    store_state(request, Authenticated("g-1"))

    assert load_state(request) == Authenticated("g-1")
    assert request.session[SESSION_KEY] == {"kind": "authenticated", "user_id": "g-1"}


def test_storing_anonymous_drops_the_key():
    request = make_request()
    store_state(request, Authenticated("g-1"))
    store_state(request, Anonymous())

    assert SESSION_KEY not in request.session


@pytest.mark.parametrize(
    "raw",
    [
        "g-1",
        {"kind": "authenticated"},
        {"kind": "authenticated", "user_id": ""},
        {"kind": "pending", "google_id": "g-1", "display_name": "Ada"},
        {"kind": "admin", "user_id": "g-1"},
    ],
)
def test_malformed_state_reads_as_anonymous(raw):
    assert load_state(make_request({SESSION_KEY: raw})) == Anonymous()


def test_clear_wipes_everything():
    request = make_request({SESSION_KEY: {"kind": "authenticated", "user_id": "g-1"}, "other": 1})
    clear(request)
    assert request.session == {}


def test_oauth_state_sits_beside_the_auth_state():
    request = make_request()
    store_state(request, Authenticated("g-1"))
    remember_oauth_state(request, "xyz")

    assert load_state(request) == Authenticated("g-1")
    assert pop_oauth_state(request) == "xyz"
    assert OAUTH_STATE_KEY not in request.session
    assert load_state(request) == Authenticated("g-1")


@pytest.mark.parametrize("raw", [None, "", 42])
def test_missing_or_malformed_oauth_state(raw):
    session = {} if raw is None else {OAUTH_STATE_KEY: raw}
    assert pop_oauth_state(make_request(session)) is None
