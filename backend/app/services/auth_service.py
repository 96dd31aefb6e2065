"""
Posts API Backend: Authorization Gate
======================================

What:  Verifies Google ID tokens presented as bearer tokens and decides who
       may read or change a post.
How:   python-jose checks the RS256 signature against Google's published JSON
       Web Key Set, plus expiry, audience (our OAuth client id) and issuer.
       The key set is cached in-process and refetched at a bounded rate.
Who:   TokenVerifier is built once per process; routes call authenticate()
       and the ensure_* checks as explicit steps of each request.

Token checks, in order:
    1. Authorization header is "Bearer <token>"
    2. Header alg is RS256 and names a key id (kid)
    3. kid is in the cached key set (one rate-limited refresh on a miss)
    4. Signature, exp, aud verified by jose.jwt.decode
    5. iss is one of the configured Google issuers
    6. sub claim is a non-empty string

Any failure raises AuthenticationError with the same message, so callers
cannot probe which check rejected them. Failure to download the key set is
an UpstreamError (502), not a 401.

Key set caching:
    - Keys are served from memory for `cache_ttl` seconds.
    - An unknown kid triggers a refetch, but no more than once per
      `min_refresh_interval` seconds.
    - Downloads retry transport errors with tenacity (exponential backoff).
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from jose import JWTError, jwt
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings
from app.exceptions import AuthenticationError, AuthorizationError, UpstreamError
from app.models.entities import Post

logger = logging.getLogger(__name__)

ALLOWED_ALGORITHM = "RS256"


class TokenVerifier:
    """Validates RS256 JWTs against a remote JWKS endpoint."""

    def __init__(
        self,
        jwks_url: str,
        audience: str,
        issuers: List[str],
        http_client: httpx.AsyncClient,
        cache_ttl: int = 3600,
        min_refresh_interval: int = 6,
    ):
        self.jwks_url = jwks_url
        self.audience = audience
        self.issuers = list(issuers)
        self.cache_ttl = cache_ttl
        self.min_refresh_interval = min_refresh_interval
        self._client = http_client

        self._keys: Dict[str, Dict[str, Any]] = {}
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    # ── Public API ────────────────────────────────────────────────────────

    async def authenticate(self, authorization: Optional[str]) -> str:
        """Verify an Authorization header value and return the token subject."""
        claims = await self.verify(self._bearer_token(authorization))
        return claims["sub"]

    async def verify(self, token: str) -> Dict[str, Any]:
        """Verify a raw JWT and return its claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise AuthenticationError("malformed token header") from exc

        if header.get("alg") != ALLOWED_ALGORITHM:
            raise AuthenticationError("unsupported algorithm", context={"alg": header.get("alg")})
        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise AuthenticationError("token header missing kid")

        key = await self._signing_key(kid)
        if key is None:
            raise AuthenticationError("unknown signing key", context={"kid": kid})

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[ALLOWED_ALGORITHM],
                audience=self.audience,
                # Google ID tokens carry at_hash; we never see the access token
                options={
                    "verify_at_hash": False,
                    "require_aud": True,
                    "require_exp": True,
                },
            )
        except JWTError as exc:
            raise AuthenticationError("token verification failed", context={"error": str(exc)}) from exc

        if claims.get("iss") not in self.issuers:
            raise AuthenticationError("unexpected issuer", context={"iss": claims.get("iss")})
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("token missing subject")
        return claims

    async def check_health(self) -> bool:
        """True when the key set can be served (from cache or a fresh download)."""
        try:
            async with self._lock:
                if self._is_stale():
                    await self._refresh()
            return bool(self._keys)
        except UpstreamError:
            return False

    # ── Key set cache ─────────────────────────────────────────────────────

    async def _signing_key(self, kid: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            if self._is_stale():
                await self._refresh()
            elif kid not in self._keys and self._may_refresh_early():
                logger.info("Unknown key id %s; refreshing signing keys", kid)
                await self._refresh()
            return self._keys.get(kid)

    def _is_stale(self) -> bool:
        return self._fetched_at is None or time.monotonic() - self._fetched_at >= self.cache_ttl

    def _may_refresh_early(self) -> bool:
        return time.monotonic() - (self._fetched_at or 0) >= self.min_refresh_interval

    async def _refresh(self) -> None:
        try:
            document = await self._download_key_set()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Could not download signing keys from %s: %s", self.jwks_url, exc)
            raise UpstreamError(service="identity provider", context={"jwks_url": self.jwks_url}) from exc

        keys = {
            key["kid"]: key
            for key in document.get("keys", [])
            if isinstance(key, dict) and key.get("kid") and key.get("kty") == "RSA"
        }
        self._keys = keys
        self._fetched_at = time.monotonic()
        logger.info("Loaded %d signing keys", len(keys))

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _download_key_set(self) -> Dict[str, Any]:
        response = await self._client.get(self.jwks_url)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _bearer_token(authorization: Optional[str]) -> str:
        if not authorization:
            raise AuthenticationError("missing Authorization header")
        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationError("Authorization header is not a bearer token")
        return token


# ══════════════════════════════════════════════════════════════════════════
# Ownership and visibility
# ══════════════════════════════════════════════════════════════════════════


def is_owner(subject: str, post: Post) -> bool:
    return subject == post.user_id


def ensure_owner(subject: str, post: Post) -> None:
    """Only the owner may change a post; anyone else gets 401."""
    if not is_owner(subject, post):
        logger.warning("Subject is not the owner of post %s; rejecting change", post.id)
        raise AuthorizationError(
            message="Only the owner of this post may change it",
            status_code=401,
            context={"post_id": post.id},
        )


def ensure_visible(subject: str, post: Post) -> None:
    """Public posts are readable by any authenticated subject; private ones by the owner."""
    if post.public or is_owner(subject, post):
        return
    raise AuthorizationError(
        message="This post is private",
        status_code=403,
        context={"post_id": post.id},
    )
