"""
Posts API Backend: Service Container and FastAPI Dependencies
==============================================================

What:  Holds the process-scoped objects (entity store, resource services,
       token verifier, OAuth client) and hands them to route handlers.
How:   build_services() wires the objects together; main.py stores the
       container on app.state; the get_* functions below are used with
       Depends() so handlers never reach for module-level singletons.
Who:   Routes (via Depends), the app lifespan, and tests (which build a
       container around fakes and pass it to create_app()).
"""

from dataclasses import dataclass
from typing import List, Optional

import httpx
from fastapi import Depends, Request

from app.config import Settings
from app.datastore import EntityStore
from app.exceptions import UnsupportedMediaError
from app.services.auth_service import TokenVerifier
from app.services.comment_service import CommentService
from app.services.oauth_service import GoogleOAuthClient
from app.services.post_service import PostService
from app.services.user_service import UserService

JSON_MEDIA_RANGES = ("application/json", "application/*", "*/*")


@dataclass
class Services:
    store: EntityStore
    users: UserService
    posts: PostService
    comments: CommentService
    verifier: TokenVerifier
    oauth: GoogleOAuthClient
    # Owned here so the lifespan can close it; None when tests inject fakes
    http_client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def build_services(
    store: EntityStore,
    verifier: TokenVerifier,
    oauth: GoogleOAuthClient,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Services:
    """Wire the resource services around one entity store."""
    return Services(
        store=store,
        users=UserService(store),
        posts=PostService(store),
        comments=CommentService(store),
        verifier=verifier,
        oauth=oauth,
        http_client=http_client,
    )


def build_services_from_settings(settings: Settings) -> Services:
    """Production wiring: real Datastore client and Google endpoints."""
    http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    store = EntityStore.from_settings(
        project=settings.datastore_project,
        namespace=settings.datastore_namespace,
    )
    verifier = TokenVerifier(
        jwks_url=settings.google_jwks_url,
        audience=settings.google_client_id,
        issuers=settings.google_issuers_list,
        http_client=http_client,
        cache_ttl=settings.jwks_cache_ttl,
        min_refresh_interval=settings.jwks_min_refresh_interval,
    )
    oauth = GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        auth_endpoint=settings.google_auth_endpoint,
        token_endpoint=settings.google_token_endpoint,
        http_client=http_client,
    )
    return build_services(store, verifier, oauth, http_client=http_client)


# ── Dependencies ──────────────────────────────────────────────────────────

def get_services(request: Request) -> Services:
    return request.app.state.services


def get_user_service(services: Services = Depends(get_services)) -> UserService:
    return services.users


def get_post_service(services: Services = Depends(get_services)) -> PostService:
    return services.posts


def get_comment_service(services: Services = Depends(get_services)) -> CommentService:
    return services.comments


def get_token_verifier(services: Services = Depends(get_services)) -> TokenVerifier:
    return services.verifier


def get_oauth_client(services: Services = Depends(get_services)) -> GoogleOAuthClient:
    return services.oauth


def require_json_accept(request: Request) -> None:
    """
    Content negotiation for JSON-only routes.

    A missing Accept header accepts anything. Otherwise one of the listed
    media ranges (with a non-zero q) must admit application/json, or the
    request fails with 406.
    """
    accept = request.headers.get("accept")
    if not accept:
        return
    for media_range in accept.split(","):
        media_type, *params = [part.strip() for part in media_range.split(";")]
        if _quality(params) <= 0:
            continue
        if media_type.lower() in JSON_MEDIA_RANGES:
            return
    raise UnsupportedMediaError(accept=accept)


def _quality(params: List[str]) -> float:
    for param in params:
        name, _, value = param.partition("=")
        if name.strip() == "q":
            try:
                return float(value)
            except ValueError:
                return 0.0
    return 1.0
