import base64
import json
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner
from sqlalchemy import create_engine, func, insert, select

from google_signup import IdentityClaims, Settings, create_app
from google_signup.errors import CodeExchangeError
from google_signup.protocol import AuthorizationRequest
from google_signup.users import metadata, users

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth?client_id=test-client-id&prompt=select_account"


class FakeIdentityProvider:
    """In-memory stand-in for Google: each known code resolves to one identity."""

    def __init__(self):
        self.identities = {}
        self.audiences = []
        self.exchanged = []
        self.states_issued = 0

    def add_code(self, code, sub, name, email):
        self.identities[code] = IdentityClaims(subject_id=sub, name=name, email=email)

    async def build_authorization_url(self):
        self.states_issued += 1
        state = f"state-{self.states_issued}"
        return AuthorizationRequest(url=f"{AUTHORIZE_URL}&state={state}", state=state)

    async def exchange_code(self, code):
        self.exchanged.append(code)
        if code not in self.identities:
            raise CodeExchangeError()
        return {"access_token": f"access-{code}", "id_token": code}

    async def verify_identity_token(self, token, expected_audience):
        self.audiences.append(expected_audience)
        return self.identities[token["id_token"]]


def complete_signin(client, code):
    """Go through /signin and come back to the callback with the issued state."""
    location = client.get("/signin").headers["location"]
    state = parse_qs(urlsplit(location).query)["state"][0]
    return client.get("/oauth2callback", params={"code": code, "state": state})


class UserTable:
    """Synchronous view of the test database for seeding and assertions."""

    def __init__(self, path):
        self.engine = create_engine(f"sqlite:///{path}")
        metadata.create_all(self.engine)

    def add(self, google_id="g-1", display_name="Ada", email="ada@x.com", **fields):
        row = {
            "google_id": google_id,
            "display_name": display_name,
            "email": email,
            "location": "NYC",
            "mobile_number": "555-1234",
            "address": "1 Main St",
            "zip": "10001",
        }
        row.update(fields)
        with self.engine.begin() as conn:
            conn.execute(insert(users).values(**row))

    def delete(self, google_id):
        with self.engine.begin() as conn:
            conn.execute(users.delete().where(users.c.google_id == google_id))

    def rows(self):
        columns = [c.label(c.key) for c in users.c if c.key != "id"]
        with self.engine.connect() as conn:
            result = conn.execute(select(*columns).order_by(users.c.id))
            return [dict(r._mapping) for r in result]

    def count(self):
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(users)).scalar_one()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "users.db"


@pytest.fixture
def settings(db_path):
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://testserver/oauth2callback",
        database_url_override=f"sqlite+aiosqlite:///{db_path}",
        session_secret="test-session-secret",
    )


@pytest.fixture
def user_table(db_path):
    table = UserTable(db_path)
    yield table
    table.engine.dispose()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def client(settings, provider, user_table):
    app = create_app(settings, provider=provider)
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def read_session(settings):
    """Decode the signed session cookie the way SessionMiddleware wrote it."""
    signer = TimestampSigner(settings.session_secret)

    def _read(client):
        cookie = client.cookies.get("session")
        if cookie is None:
            return {}
        return json.loads(base64.b64decode(signer.unsign(cookie)))

    return _read
