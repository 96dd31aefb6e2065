"""
Posts API Backend: Google OAuth Client Unit Tests
==================================================

What:  Tests for the consent-screen URL and the authorization-code exchange.
How:   The token endpoint is an httpx.MockTransport, so no request leaves the
       process.

What we test:
    ✅ Consent URL carries client id, redirect URI, scopes and state
    ✅ A 200 with id_token returns the token; the form carries the code
    ✅ Transport errors and 5xx answers raise UpstreamError (502)
    ✅ Other non-200 answers raise AuthenticationError (401)
    ✅ A non-JSON body raises UpstreamError; a body without id_token is 401
"""

from urllib.parse import parse_qs

import httpx
import pytest

from app.exceptions import AuthenticationError, UpstreamError
from app.services.oauth_service import GoogleOAuthClient

AUTH_ENDPOINT = "https://accounts.example.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://tokens.example.com/token"


class TokenEndpoint:
    """Answers token requests with a fixed response and records the forms it saw."""

    def __init__(self, status_code=200, json=None, content=None, fail_transport=False):
        self.status_code = status_code
        self.json = {"id_token": "signed.jwt.value", "access_token": "ya29"} if json is None else json
        self.content = content
        self.fail_transport = fail_transport
        self.forms = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.forms.append({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        if self.fail_transport:
            raise httpx.ConnectTimeout("timed out", request=request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.json)


def make_client(endpoint=None):
    transport = httpx.MockTransport(endpoint or TokenEndpoint())
    return GoogleOAuthClient(
        client_id="client-123",
        client_secret="shh",
        redirect_uri="https://posts.example.com/oauth",
        auth_endpoint=AUTH_ENDPOINT,
        token_endpoint=TOKEN_ENDPOINT,
        http_client=httpx.AsyncClient(transport=transport),
    )


class TestAuthorizationUrl:

    def test_consent_url_parameters(self):
        url = httpx.URL(make_client().authorization_url("state-xyz"))

        assert (url.scheme, url.host, url.path) == ("https", "accounts.example.com", "/o/oauth2/v2/auth")
        assert dict(url.params) == {
            "client_id": "client-123",
            "redirect_uri": "https://posts.example.com/oauth",
            "response_type": "code",
            "scope": "openid profile email",
            "access_type": "online",
            "prompt": "select_account",
            "state": "state-xyz",
        }


class TestExchangeCode:

    @pytest.mark.asyncio
    async def test_returns_id_token(self):
        endpoint = TokenEndpoint()
        client = make_client(endpoint)

        id_token = await client.exchange_code("4/0Ab-code")

        assert id_token == "signed.jwt.value"
        assert endpoint.forms == [
            {
                "code": "4/0Ab-code",
                "client_id": "client-123",
                "client_secret": "shh",
                "redirect_uri": "https://posts.example.com/oauth",
                "grant_type": "authorization_code",
            }
        ]

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream(self):
        endpoint = TokenEndpoint(fail_transport=True)

        with pytest.raises(UpstreamError) as exc_info:
            await make_client(endpoint).exchange_code("code")

        assert exc_info.value.status_code == 502
        assert len(endpoint.forms) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 503])
    async def test_server_error_is_upstream(self, status):
        endpoint = TokenEndpoint(status_code=status, json={"error": "backend_error"})

        with pytest.raises(UpstreamError):
            await make_client(endpoint).exchange_code("code")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 403])
    async def test_rejected_code_is_authentication_error(self, status):
        endpoint = TokenEndpoint(status_code=status, json={"error": "invalid_grant"})

        with pytest.raises(AuthenticationError) as exc_info:
            await make_client(endpoint).exchange_code("reused-code")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_non_json_body_is_upstream(self):
        endpoint = TokenEndpoint(content=b"<html>gateway hiccup</html>")

        with pytest.raises(UpstreamError):
            await make_client(endpoint).exchange_code("code")

    @pytest.mark.asyncio
    async def test_missing_id_token_is_authentication_error(self):
        endpoint = TokenEndpoint(json={"access_token": "ya29", "token_type": "Bearer"})

        with pytest.raises(AuthenticationError):
            await make_client(endpoint).exchange_code("code")
