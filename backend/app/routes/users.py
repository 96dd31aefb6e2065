"""
Posts API Backend: User Route Handlers

Users are created by the sign-in flow (/oauth), never through this router.
Listing is open and unpaged.
"""

from typing import List

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_user_service
from app.models.entities import User
from app.schemas.resources import ErrorResponse, UserResponse
from app.services.user_service import UserService

router = APIRouter(tags=["Users"])


def user_response(request: Request, user: User) -> UserResponse:
    return UserResponse(
        **user.model_dump(by_alias=True),
        self=str(request.url_for("get_user", user_id=user.id)),
    )


@router.get("/users", response_model=List[UserResponse], summary="List every registered user")
async def list_users(
    request: Request,
    users: UserService = Depends(get_user_service),
) -> List[UserResponse]:
    page = await users.list()
    return [user_response(request, user) for user in page.records]


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a single user",
)
async def get_user(
    request: Request,
    user_id: str,
    users: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await users.require(user_id)
    return user_response(request, user)
