"""
Google OAuth2 identity provider.

Uses Authlib's Starlette client with Google's OIDC discovery document for the
authorization URL, the code exchange and ID-token verification. Requires
CLIENT_ID, CLIENT_SECRET and REDIRECT_URI (see config.Settings).
"""

import httpx
import structlog
from authlib.integrations.starlette_client import OAuth, OAuthError
from joserfc.errors import JoseError

from google_signup.config import Settings
from google_signup.errors import CodeExchangeError, IdentityVerificationError, ProviderError
from google_signup.protocol import AuthorizationRequest, IdentityClaims, IdentityProvider

logger = structlog.get_logger(__name__)

METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

# Google signs ID tokens with either issuer form.
GOOGLE_ISSUERS = ["https://accounts.google.com", "accounts.google.com"]


class GoogleIdentityProvider(IdentityProvider):
    """Identity provider backed by Google sign-in."""

    name: str = "google"

    def __init__(self, settings: Settings):
        self.redirect_uri = settings.redirect_uri
        self.oauth = OAuth()
        self.oauth.register(
            name=self.name,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            server_metadata_url=METADATA_URL,
            client_kwargs={"scope": "profile email"},
        )

    @property
    def client(self):
        return self.oauth.create_client(self.name)

    async def build_authorization_url(self) -> AuthorizationRequest:
        """
        Return the consent URL: offline access, profile + email scopes, and
        account selection forced on every sign-in.

        Loading Google's discovery document is a network call; failures there
        surface as ProviderError.
        """
        try:
            result = await self.client.create_authorization_url(
                self.redirect_uri,
                access_type="offline",
                prompt="select_account",
            )
        except (OAuthError, httpx.HTTPError) as exc:
            logger.warning("discovery_failed", error=str(exc))
            raise ProviderError("Google sign-in is unavailable right now, please try again later") from exc
        return AuthorizationRequest(url=result["url"], state=result["state"])

    async def exchange_code(self, code: str) -> dict:
        try:
            return await self.client.fetch_access_token(redirect_uri=self.redirect_uri, code=code)
        except (OAuthError, httpx.HTTPError) as exc:
            logger.warning("code_exchange_failed", error=str(exc))
            raise CodeExchangeError() from exc

    async def verify_identity_token(self, token: dict, expected_audience: str) -> IdentityClaims:
        """Check signature, issuer, audience and expiry of ``token['id_token']``."""
        if not token.get("id_token"):
            raise IdentityVerificationError("Google did not return an ID token")

        claims_options = {
            "iss": {"essential": True, "values": GOOGLE_ISSUERS},
            "aud": {"essential": True, "values": [expected_audience]},
        }
        try:
            userinfo = await self.client.parse_id_token(token, nonce=None, claims_options=claims_options)
        except (JoseError, OAuthError, httpx.HTTPError) as exc:
            logger.warning("id_token_rejected", error=str(exc))
            raise IdentityVerificationError() from exc

        return IdentityClaims(
            subject_id=userinfo["sub"],
            name=userinfo.get("name", ""),
            email=userinfo.get("email", ""),
        )
