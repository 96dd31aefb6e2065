"""
Posts API Backend: Comment Service

Comments are standalone records. Nothing links a comment to a post: the
Post.comments list is never written by this service.
"""

from app.models.entities import Comment
from app.services.resource_service import ResourceService


class CommentService(ResourceService[Comment]):
    model = Comment
    resource = "comment"
    REQUIRED_FIELDS = ("content", "creationDate", "upvote")
    PAGE_SIZE = 5
