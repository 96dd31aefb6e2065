"""
Posts API Backend: Comment Route Handlers
==========================================

What:  CRUD endpoints for /comments.
How:   Same pipeline shape as the post routes. Only creation requires a bearer
       token; comments have no owner, so reads and edits are open.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response

from app.dependencies import get_comment_service, get_token_verifier
from app.exceptions import MethodNotAllowedError, NotFoundError
from app.models.entities import Comment
from app.schemas.resources import (
    CommentListResponse,
    CommentPayload,
    CommentResponse,
    ErrorResponse,
)
from app.services.auth_service import TokenVerifier
from app.services.comment_service import CommentService

router = APIRouter(tags=["Comments"])


def comment_response(request: Request, comment: Comment) -> CommentResponse:
    return CommentResponse(
        **comment.model_dump(by_alias=True),
        self=str(request.url_for("get_comment", comment_id=comment.id)),
    )


@router.post(
    "/comments",
    status_code=201,
    response_model=CommentResponse,
    responses={
        400: {"description": "Missing required attribute", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
    },
    summary="Create a comment",
)
async def create_comment(
    request: Request,
    payload: CommentPayload,
    authorization: Optional[str] = Header(default=None),
    comments: CommentService = Depends(get_comment_service),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> CommentResponse:
    attributes = payload.present()
    comments.validate(attributes)
    await verifier.authenticate(authorization)

    comment = await comments.create(attributes)
    return comment_response(request, comment)


@router.get(
    "/comments",
    response_model=CommentListResponse,
    response_model_exclude_none=True,
    summary="List comments, five per page",
)
async def list_comments(
    request: Request,
    cursor: Optional[str] = Query(default=None, description="Cursor from a previous page's next link"),
    comments: CommentService = Depends(get_comment_service),
) -> CommentListResponse:
    page = await comments.list(cursor=cursor)

    next_link = None
    if page.next_cursor:
        next_link = str(request.url_for("list_comments").include_query_params(cursor=page.next_cursor))

    return CommentListResponse(
        comments=[comment_response(request, comment) for comment in page.records],
        next=next_link,
        total_items=page.total,
    )


@router.get(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="Get a single comment",
)
async def get_comment(
    request: Request,
    comment_id: str,
    comments: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    comment = await comments.require(comment_id)
    return comment_response(request, comment)


@router.put(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    responses={
        400: {"description": "Missing required attribute", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Replace a comment",
)
async def replace_comment(
    request: Request,
    comment_id: str,
    payload: CommentPayload,
    comments: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    attributes = payload.present()
    comments.validate(attributes)
    current = await comments.require(comment_id)

    comment = await comments.update(current, attributes)
    return comment_response(request, comment)


@router.patch(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="Change only the supplied attributes of a comment",
)
async def patch_comment(
    request: Request,
    comment_id: str,
    payload: CommentPayload,
    comments: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    current = await comments.require(comment_id)
    comment = await comments.merge(current, payload.present())
    return comment_response(request, comment)


@router.delete(
    "/comments/{comment_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="Delete a comment",
)
async def delete_comment(
    comment_id: str,
    comments: CommentService = Depends(get_comment_service),
) -> Response:
    if not await comments.delete(comment_id):
        raise NotFoundError(resource="comment", resource_id=comment_id)
    return Response(status_code=204)


@router.delete(
    "/comments",
    status_code=405,
    responses={405: {"description": "Bulk delete is not supported", "model": ErrorResponse}},
    summary="Bulk delete (always refused)",
)
async def delete_all_comments() -> None:
    raise MethodNotAllowedError(allowed=("GET", "POST"))
