"""
Posts API Backend: Post Route Handlers
=======================================

What:  CRUD endpoints for /posts, all guarded by a Google ID bearer token
       except single-post DELETE.
How:   Each handler is an explicit pipeline. Steps run in order and the first
       failing step raises, so nothing after it executes:

           validate body   → 400 (before any store call)
           authenticate    → 401
           fetch           → 404
           authorize       → 401 (mutations) / 403 (private read)
           write           (at most one per request)
           respond         → 200 / 201 / 204

       Content negotiation (406) runs as a route dependency, ahead of the body.

Responses carry a "self" link built from the request's scheme and host, so
they are correct behind a proxy that forwards X-Forwarded-Proto/Host.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response

from app.dependencies import (
    get_post_service,
    get_token_verifier,
    require_json_accept,
)
from app.exceptions import MethodNotAllowedError, NotFoundError
from app.models.entities import Post
from app.schemas.resources import (
    ErrorResponse,
    PostListResponse,
    PostPayload,
    PostResponse,
)
from app.services.auth_service import TokenVerifier, ensure_owner, ensure_visible
from app.services.post_service import PostService

router = APIRouter(tags=["Posts"])


def post_response(request: Request, post: Post) -> PostResponse:
    return PostResponse(
        **post.model_dump(by_alias=True),
        self=str(request.url_for("get_post", post_id=post.id)),
    )


@router.post(
    "/posts",
    status_code=201,
    response_model=PostResponse,
    dependencies=[Depends(require_json_accept)],
    responses={
        400: {"description": "Missing required attribute", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        406: {"description": "Client does not accept JSON", "model": ErrorResponse},
    },
    summary="Create a post owned by the caller",
)
async def create_post(
    request: Request,
    payload: PostPayload,
    authorization: Optional[str] = Header(default=None),
    posts: PostService = Depends(get_post_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> PostResponse:
    attributes = payload.present()
    posts.validate(attributes)
    subject = await verifier.authenticate(authorization)

    post = await posts.create(attributes, owner=subject)
    return post_response(request, post)


@router.get(
    "/posts",
    response_model=PostListResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_json_accept)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        406: {"description": "Client does not accept JSON", "model": ErrorResponse},
    },
    summary="List the caller's posts, five per page",
)
async def list_posts(
    request: Request,
    cursor: Optional[str] = Query(default=None, description="Cursor from a previous page's next link"),
    authorization: Optional[str] = Header(default=None),
    posts: PostService = Depends(get_post_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> PostListResponse:
    """
    One page of posts owned by the token subject.

    `next` echoes the store's cursor back into this URL and `total_items`
    counts all of the caller's posts; both are omitted on the last page.
    """
    subject = await verifier.authenticate(authorization)
    page = await posts.list_for_owner(subject, cursor=cursor)

    next_link = None
    if page.next_cursor:
        next_link = str(request.url_for("list_posts").include_query_params(cursor=page.next_cursor))

    return PostListResponse(
        posts=[post_response(request, post) for post in page.records],
        next=next_link,
        total_items=page.total,
    )


@router.get(
    "/posts/{post_id}",
    response_model=PostResponse,
    dependencies=[Depends(require_json_accept)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        403: {"description": "Private post of another user", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
        406: {"description": "Client does not accept JSON", "model": ErrorResponse},
    },
    summary="Get a single post",
)
async def get_post(
    request: Request,
    post_id: str,
    authorization: Optional[str] = Header(default=None),
    posts: PostService = Depends(get_post_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> PostResponse:
    subject = await verifier.authenticate(authorization)
    post = await posts.require(post_id)
    ensure_visible(subject, post)
    return post_response(request, post)


@router.put(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses={
        400: {"description": "Missing required attribute", "model": ErrorResponse},
        401: {"description": "Invalid token, or caller is not the owner", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Replace a post's content, date and visibility",
)
async def replace_post(
    request: Request,
    post_id: str,
    payload: PostPayload,
    authorization: Optional[str] = Header(default=None),
    posts: PostService = Depends(get_post_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> PostResponse:
    attributes = payload.present()
    posts.validate(attributes)
    subject = await verifier.authenticate(authorization)
    current = await posts.require(post_id)
    ensure_owner(subject, current)

    post = await posts.update(current, attributes)
    return post_response(request, post)


@router.patch(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses={
        401: {"description": "Invalid token, or caller is not the owner", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Change only the supplied attributes of a post",
)
async def patch_post(
    request: Request,
    post_id: str,
    payload: PostPayload,
    authorization: Optional[str] = Header(default=None),
    posts: PostService = Depends(get_post_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> PostResponse:
    subject = await verifier.authenticate(authorization)
    current = await posts.require(post_id)
    ensure_owner(subject, current)

    post = await posts.merge(current, payload.present())
    return post_response(request, post)


@router.delete(
    "/posts/{post_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Delete a post",
)
async def delete_post(
    post_id: str,
    posts: PostService = Depends(get_post_service),
) -> Response:
    # Comments are not linked to posts, so nothing cascades
    if not await posts.delete(post_id):
        raise NotFoundError(resource="post", resource_id=post_id)
    return Response(status_code=204)


@router.delete(
    "/posts",
    status_code=405,
    responses={405: {"description": "Bulk delete is not supported", "model": ErrorResponse}},
    summary="Bulk delete (always refused)",
)
async def delete_all_posts() -> None:
    raise MethodNotAllowedError(allowed=("GET", "POST"))
