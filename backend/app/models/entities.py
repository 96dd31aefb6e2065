"""
Posts API Backend: Domain Records
==================================

What:  Pydantic models for the three Datastore kinds: Users, Posts, Comments.
How:   Field aliases match the stored property names (and the JSON the API
       speaks), so a record read from the EntityStore validates straight into
       a model and `to_properties()` gives back what the store should write.
Who:   Built and consumed by the resource services.

Kinds and properties:
    Users     firstName, lastName, userID
    Posts     content, creationDate, public, userID, comments, upvotes
    Comments  content, creationDate, upvote

`content` is excluded from Datastore indexes: indexed strings are capped at
1500 bytes and nothing queries on it.
"""

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Common base: store-assigned id plus the Datastore kind metadata."""

    KIND: ClassVar[str] = ""
    UNINDEXED: ClassVar[Tuple[str, ...]] = ()

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, description="Store-assigned identifier")

    def to_properties(self) -> Dict[str, Any]:
        """Entity properties as stored (aliases, without the id)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class User(Record):
    KIND: ClassVar[str] = "Users"

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    # External subject ("sub" claim); unique per person
    user_id: str = Field(alias="userID")


class Post(Record):
    """
    A post owned by the subject that created it.

    `user_id` is set once at creation and copied forward by every edit.
    `comments` and `upvotes` are not writable through the API; edits carry
    them over unchanged.
    """

    KIND: ClassVar[str] = "Posts"
    UNINDEXED: ClassVar[Tuple[str, ...]] = ("content",)

    content: str
    creation_date: str = Field(alias="creationDate")
    public: bool
    user_id: str = Field(alias="userID")
    comments: List[Any] = Field(default_factory=list)
    upvotes: int = 0


class Comment(Record):
    KIND: ClassVar[str] = "Comments"
    UNINDEXED: ClassVar[Tuple[str, ...]] = ("content",)

    content: str
    creation_date: str = Field(alias="creationDate")
    upvote: bool
