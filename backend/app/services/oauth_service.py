"""
Posts API Backend: Google OAuth2 Client
=======================================

What:  The two calls the sign-in flow makes to Google.
How:   authorization_url() builds the consent-screen redirect for /auth;
       exchange_code() trades the authorization code /oauth receives for an
       OpenID Connect ID token. The ID token is then verified by TokenVerifier
       like any bearer token.

Code exchange is not retried: an authorization code is single-use, so a
repeated POST after a lost response would fail anyway.
"""

import logging
from urllib.parse import urlencode

import httpx

from app.exceptions import AuthenticationError, UpstreamError

logger = logging.getLogger(__name__)

SCOPES = ("openid", "profile", "email")


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        auth_endpoint: str,
        token_endpoint: str,
        http_client: httpx.AsyncClient,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.auth_endpoint = auth_endpoint
        self.token_endpoint = token_endpoint
        self._client = http_client

    def authorization_url(self, state: str) -> str:
        """Consent-screen URL; Google redirects back to redirect_uri with ?code&state."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "online",
            "prompt": "select_account",
            "state": state,
        }
        return f"{self.auth_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an ID token (a signed JWT).

        Raises:
            UpstreamError: Google unreachable or answered 5xx
            AuthenticationError: Google rejected the code, or sent no id_token
        """
        try:
            response = await self._client.post(
                self.token_endpoint,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.error("Token endpoint request failed: %s", exc)
            raise UpstreamError(service="identity provider") from exc

        if response.status_code >= 500:
            logger.error("Token endpoint answered %d", response.status_code)
            raise UpstreamError(service="identity provider", context={"status": response.status_code})
        if response.status_code != 200:
            # invalid_grant etc.: expired, reused or forged code
            raise AuthenticationError(
                "authorization code rejected",
                context={"status": response.status_code},
            )

        try:
            id_token = response.json().get("id_token")
        except ValueError as exc:
            raise UpstreamError(service="identity provider") from exc
        if not id_token:
            raise AuthenticationError("token response without id_token")
        return id_token
