"""
Posts API Backend: Post Service
================================

What:  Posts owned by the authenticated subject that created them.
How:   ResourceService over the "Posts" kind with the owner stamped at
       creation and an owner filter on listings.

Invariants:
    - userID is set from the token subject on create and never from the body.
    - comments starts empty and upvotes at 0; edits carry both forward.
    - Listings hold PAGE_SIZE posts and only the caller's own posts.
"""

from typing import Any, Dict, Optional

from app.models.entities import Post
from app.services.resource_service import Page, ResourceService


class PostService(ResourceService[Post]):
    model = Post
    resource = "post"
    REQUIRED_FIELDS = ("content", "creationDate", "public")
    PAGE_SIZE = 5

    async def create(self, attributes: Dict[str, Any], owner: str) -> Post:
        return await super().create(attributes, userID=owner, comments=[], upvotes=0)

    async def list_for_owner(self, owner: str, cursor: Optional[str] = None) -> Page[Post]:
        """One page of the posts `owner` created, filtered by the store."""
        return await self.list(cursor=cursor, filters=[("userID", "=", owner)])
