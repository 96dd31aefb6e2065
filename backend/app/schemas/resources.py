"""
Posts API Backend: Pydantic Request/Response Schemas
=====================================================

What:  The API contract for Users, Posts and Comments.
How:   FastAPI parses request bodies into the *Payload models and serializes
       handler results through the *Response models (by alias, so the JSON
       uses camelCase names like creationDate and userID).

Payload fields are all optional on purpose. "Which fields are required"
depends on the operation (POST/PUT need the full set, PATCH needs none), so
the services check required sets and answer 400 themselves. Type errors
(e.g. "public": "maybe") are still caught here and also answer 400.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    """Base for request bodies: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def present(self) -> Dict[str, Any]:
        """Attributes the client actually sent with a non-null value, by alias."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Request Bodies
# ══════════════════════════════════════════════════════════════════════════


class PostPayload(Payload):
    content: Optional[str] = None
    creation_date: Optional[str] = Field(default=None, alias="creationDate")
    public: Optional[bool] = None


class CommentPayload(Payload):
    content: Optional[str] = None
    creation_date: Optional[str] = Field(default=None, alias="creationDate")
    upvote: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ResourceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Store-assigned identifier")
    self_link: str = Field(alias="self", description="Canonical URL of this resource")


class UserResponse(ResourceResponse):
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    user_id: str = Field(alias="userID", description="External subject identifier")


class PostResponse(ResourceResponse):
    content: str
    creation_date: str = Field(alias="creationDate")
    public: bool
    user_id: str = Field(alias="userID", description="Subject of the owning user")
    comments: List[Any] = Field(default_factory=list)
    upvotes: int = 0


class CommentResponse(ResourceResponse):
    content: str
    creation_date: str = Field(alias="creationDate")
    upvote: bool


class PostListResponse(BaseModel):
    """
    One page of the caller's posts.

    next:        listing URL with the continuation cursor; absent on the last page
    total_items: number of posts the caller owns; absent on the last page
    """

    posts: List[PostResponse]
    next: Optional[str] = None
    total_items: Optional[int] = None


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    next: Optional[str] = None
    total_items: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """Every error body: a single human-readable message."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(alias="Error", description="Human-readable error description")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    datastore: str = Field(description="Datastore connectivity: connected, disconnected")
    identity_provider: str = Field(description="Signing keys: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
