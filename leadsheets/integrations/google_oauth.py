"""
Google OAuth client for tenant grants.

Wraps google-auth-oauthlib's web ``Flow`` for the authorization-code
exchange and google-auth ``Credentials`` for renewal. Renewal is explicit:
``renew_if_expired`` returns a new grant and the caller persists it. Nothing
here mutates stored credentials behind the caller's back.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from leadsheets.config import Settings
from leadsheets.errors import DeliveryFailed, GrantRevoked, TokenExchangeFailed
from leadsheets.schemas.grant import OAuthGrant

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/spreadsheets",
]

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def _aware(value: datetime | None) -> datetime | None:
    # google-auth keeps expiry as naive UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class GoogleOAuthClient:
    """Authorization URLs, code exchange and token renewal against Google."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str] | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes or SCOPES)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleOAuthClient":
        return cls(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_redirect_uri,
        )

    def _flow(self, state: str | None = None) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        return Flow.from_client_config(
            client_config,
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            state=state,
            # The callback builds a fresh Flow, so no PKCE verifier survives
            autogenerate_code_verifier=False,
        )

    def authorization_url(self, state: str) -> str:
        url, _ = self._flow(state).authorization_url(
            access_type="offline",
            include_granted_scopes="true",
            prompt="consent",
        )
        return url

    def _fetch_grant(self, code: str) -> OAuthGrant:
        flow = self._flow()
        flow.fetch_token(code=code)
        creds = flow.credentials
        scope = " ".join(getattr(creds, "granted_scopes", None) or creds.scopes or self.scopes)
        return OAuthGrant(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            scope=scope,
            expiry=_aware(creds.expiry),
        )

    async def exchange_code(self, code: str) -> OAuthGrant:
        """Trade an authorization code for a token pair."""
        try:
            grant = await asyncio.to_thread(self._fetch_grant, code)
        except (OAuth2Error, requests.RequestException, ValueError) as exc:
            raise TokenExchangeFailed(f"Google rejected the authorization code: {exc}") from exc
        if not grant.refresh_token:
            logger.warning("Token exchange returned no refresh token; grant will expire")
        return grant

    def _refresh(self, grant: OAuthGrant) -> OAuthGrant:
        creds = Credentials(
            token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=grant.scope.split() if grant.scope else None,
            expiry=_naive_utc(grant.expiry),
        )
        creds.refresh(Request())
        return grant.model_copy(
            update={
                "access_token": creds.token,
                "expiry": _aware(creds.expiry),
                "refresh_token": creds.refresh_token or grant.refresh_token,
            }
        )

    async def refresh(self, grant: OAuthGrant) -> OAuthGrant:
        """Renew the access token with the stored refresh token."""
        if not grant.refresh_token:
            raise GrantRevoked("Access token expired and no refresh token is stored")
        try:
            return await asyncio.to_thread(self._refresh, grant)
        except RefreshError as exc:
            if getattr(exc, "retryable", False):
                raise DeliveryFailed("Token renewal failed", provider_detail=str(exc)) from exc
            raise GrantRevoked("Google refused to renew the grant", provider_detail=str(exc)) from exc
        except TransportError as exc:
            raise DeliveryFailed("Token renewal request failed", provider_detail=str(exc)) from exc


async def renew_if_expired(
    grant: OAuthGrant,
    oauth_client: GoogleOAuthClient,
    *,
    now: datetime | None = None,
    skew_seconds: int = 60,
) -> OAuthGrant:
    """
    Return ``grant`` untouched while its access token is still valid, otherwise
    a renewed copy. The caller is responsible for persisting a renewed grant.
    """
    if grant.expiry is None:
        return grant
    now = now or datetime.now(timezone.utc)
    if now < grant.expiry - timedelta(seconds=skew_seconds):
        return grant
    if not grant.refresh_token:
        raise GrantRevoked("Access token expired and no refresh token is stored")
    logger.info("Access token expired at %s; renewing", grant.expiry.isoformat())
    return await oauth_client.refresh(grant)
