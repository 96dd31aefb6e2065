"""
Posts API Backend: Resource Service Base
=========================================

What:  The create / read / list / edit / delete contract shared by the Users,
       Posts and Comments services.
How:   Each subclass names its record model, the attributes a full write
       requires, and its page size. All persistence goes through EntityStore.
Who:   Subclassed by UserService, PostService, CommentService; called by routes.

Write semantics:
    edit()    Full replace of the stored entity with the given record.
    update()  PUT: every required attribute must be present; fields the client
              cannot set (owner, counters, ...) are copied forward from the
              current record, then edit().
    merge()   PATCH: only the attributes present in the payload are applied
              onto the freshly fetched record, then edit().

Each operation performs at most one write, and required-field validation
happens before any store call.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, Type, TypeVar

from app.datastore import EntityStore, Filter
from app.exceptions import NotFoundError, ValidationError
from app.models.entities import Record

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


@dataclass
class Page(Generic[RecordT]):
    """
    A page of records.

    total is only reported when another page follows; callers that reached
    the last page get None.
    """

    records: List[RecordT] = field(default_factory=list)
    next_cursor: Optional[str] = None
    total: Optional[int] = None


class ResourceService(Generic[RecordT]):
    """Generic CRUD over one Datastore kind."""

    model: Type[RecordT]
    # Name used in error messages ("No post with this post_id exists")
    resource: str = "resource"
    REQUIRED_FIELDS: Tuple[str, ...] = ()
    # None disables paging: list() returns every record
    PAGE_SIZE: Optional[int] = None

    def __init__(self, store: EntityStore):
        self.store = store

    @property
    def kind(self) -> str:
        return self.model.KIND

    def validate(self, attributes: Dict[str, Any]) -> None:
        """Raise ValidationError unless every required attribute is present."""
        missing = [name for name in self.REQUIRED_FIELDS if attributes.get(name) is None]
        if missing:
            raise ValidationError(missing=missing, context={"kind": self.kind})

    async def create(self, attributes: Dict[str, Any], **extra: Any) -> RecordT:
        """
        Validate and store a new record; the store assigns its id.

        `extra` carries server-controlled properties (e.g. the owner) that
        override anything in the client attributes.
        """
        self.validate(attributes)
        record = self.model.model_validate({**attributes, **extra})
        record.id = await self.store.put(
            self.kind,
            record.to_properties(),
            exclude_from_indexes=self.model.UNINDEXED,
        )
        logger.info("Created %s %s", self.kind, record.id)
        return record

    async def get_by_id(self, entity_id: str) -> Optional[RecordT]:
        data = await self.store.get(self.kind, entity_id)
        if data is None:
            return None
        return self.model.model_validate(data)

    async def require(self, entity_id: str) -> RecordT:
        """get_by_id() that raises NotFoundError instead of returning None."""
        record = await self.get_by_id(entity_id)
        if record is None:
            raise NotFoundError(resource=self.resource, resource_id=entity_id)
        return record

    async def list(
        self,
        cursor: Optional[str] = None,
        filters: Iterable[Filter] = (),
    ) -> Page[RecordT]:
        result = await self.store.query(
            self.kind,
            filters=filters,
            limit=self.PAGE_SIZE,
            cursor=cursor,
        )
        records = [self.model.model_validate(data) for data in result.records]
        total = result.total if result.next_cursor else None
        return Page(records=records, next_cursor=result.next_cursor, total=total)

    async def edit(self, entity_id: str, record: RecordT) -> RecordT:
        """Overwrite the stored entity with `record` in full."""
        await self.store.put(
            self.kind,
            record.to_properties(),
            entity_id=entity_id,
            exclude_from_indexes=self.model.UNINDEXED,
        )
        record.id = entity_id
        logger.info("Edited %s %s", self.kind, entity_id)
        return record

    async def update(self, current: RecordT, attributes: Dict[str, Any]) -> RecordT:
        """Full update (PUT). Requires the complete attribute set."""
        self.validate(attributes)
        return await self.edit(current.id, self._apply(current, attributes))

    async def merge(self, current: RecordT, attributes: Dict[str, Any]) -> RecordT:
        """Partial update (PATCH). Absent attributes keep their stored values."""
        return await self.edit(current.id, self._apply(current, attributes))

    async def delete(self, entity_id: str) -> bool:
        """Delete one entity. Returns False when there was nothing to delete."""
        if await self.store.get(self.kind, entity_id) is None:
            return False
        await self.store.delete(self.kind, entity_id)
        logger.info("Deleted %s %s", self.kind, entity_id)
        return True

    def _apply(self, current: RecordT, attributes: Dict[str, Any]) -> RecordT:
        data = current.model_dump(by_alias=True)
        data.update(attributes)
        return self.model.model_validate(data)
