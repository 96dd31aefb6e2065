"""
Posts API Backend: Entity Store Adapter
========================================

What:  Translates domain records (plain dicts) to and from Cloud Datastore
       keys and entities.
How:   Wraps a synchronous google.cloud.datastore.Client. Every call runs in
       Starlette's thread pool so request handlers can await it without
       blocking the event loop.
Who:   Used by the resource services; constructed once per process in the
       application lifespan.

Record shape:
    Records handed out by this adapter are dicts of entity properties plus an
    "id" key holding the store-assigned identifier as a string. Records handed
    in must NOT contain "id"; the key carries it.

Failure semantics:
    Remote failures (google.api_core.exceptions.GoogleAPIError) are propagated
    unchanged, except InvalidArgument caused by a client-supplied cursor, which
    becomes a ValidationError. There is no retry and no local cache.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi.concurrency import run_in_threadpool
from google.api_core.exceptions import InvalidArgument
from google.cloud import datastore
from google.cloud.datastore.query import PropertyFilter

from app.exceptions import ValidationError

logger = logging.getLogger(__name__)

# (property, operator, value), e.g. ("userID", "=", "1234")
Filter = Tuple[str, str, Any]


@dataclass
class QueryPage:
    """One page of query results plus the cursor to resume from."""

    records: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    total: int = 0


class EntityStore:
    """
    Async facade over a Cloud Datastore client.

    Contract:
        put(kind, record, entity_id=None)  → id (allocated when entity_id is None)
        get(kind, entity_id)                → record or None
        query(kind, filters, limit, cursor) → QueryPage(records, next_cursor, total)
        delete(kind, entity_id)             → None
    """

    def __init__(self, client: datastore.Client):
        self._client = client

    @classmethod
    def from_settings(cls, project: Optional[str] = None, namespace: Optional[str] = None) -> "EntityStore":
        """Build a store around a new client (credentials from the environment)."""
        client = datastore.Client(project=project, namespace=namespace)
        logger.info("Datastore client created for project=%s namespace=%s", client.project, namespace)
        return cls(client)

    # ── Key / entity translation ──────────────────────────────────────────

    def _key(self, kind: str, entity_id: Optional[str] = None) -> Optional[datastore.Key]:
        """
        Build a key for `kind`. None produces an incomplete key (store allocates).

        Numeric ids are the only ones this API ever hands out; anything else
        cannot name a stored entity and returns None.
        """
        if entity_id is None:
            return self._client.key(kind)
        entity_id = str(entity_id)
        if not entity_id.isdigit() or int(entity_id) == 0:
            return None
        return self._client.key(kind, int(entity_id))

    @staticmethod
    def _from_entity(entity: datastore.Entity) -> Dict[str, Any]:
        record = dict(entity)
        record["id"] = str(entity.key.id_or_name)
        return record

    # ── Operations ────────────────────────────────────────────────────────

    async def put(
        self,
        kind: str,
        record: Dict[str, Any],
        entity_id: Optional[str] = None,
        exclude_from_indexes: Sequence[str] = (),
    ) -> str:
        """
        Write `record` as an entity of `kind` and return its id.

        entity_id None creates a new entity; otherwise the existing entity is
        overwritten in full (Datastore puts are whole-entity replacements).
        """
        key = self._key(kind, entity_id)
        if key is None:
            raise ValidationError(message=f"Invalid {kind} id", context={"entity_id": entity_id})

        entity = datastore.Entity(key=key, exclude_from_indexes=tuple(exclude_from_indexes))
        entity.update({name: value for name, value in record.items() if name != "id"})
        await run_in_threadpool(self._client.put, entity)
        # put() completes the key in place when the store allocates the id
        return str(entity.key.id_or_name)

    async def get(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one record, or None when no entity has this id."""
        key = self._key(kind, entity_id)
        if key is None:
            return None
        entity = await run_in_threadpool(self._client.get, key)
        if entity is None:
            return None
        return self._from_entity(entity)

    async def delete(self, kind: str, entity_id: str) -> None:
        key = self._key(kind, entity_id)
        if key is None:
            return
        await run_in_threadpool(self._client.delete, key)

    async def query(
        self,
        kind: str,
        filters: Iterable[Filter] = (),
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> QueryPage:
        """
        Run a query over `kind` and return one page of results.

        Without a limit every matching record is returned and next_cursor is None.
        With a limit, the page starts at `cursor` and next_cursor is set only
        when at least one more record follows the page. Datastore hands out a
        cursor for every full page, so a keys-only lookahead of one record
        decides whether to keep it.

        The total is taken from a separate unpaged keys-only query with the same
        filters, executed once per call.

        Raises:
            ValidationError: the cursor is not one this store handed out
        """
        filters = list(filters)
        if cursor is None:
            return await run_in_threadpool(self._run_query, kind, filters, limit, cursor)

        cursor = self._normalize_cursor(cursor)
        try:
            return await run_in_threadpool(self._run_query, kind, filters, limit, cursor)
        except InvalidArgument as exc:
            # Well-formed base64 that does not decode to a Datastore cursor
            raise ValidationError(message="Invalid pagination cursor", context={"cursor": cursor}) from exc

    async def ping(self) -> None:
        """Cheapest round trip to the store; used by the health check."""
        await run_in_threadpool(self._ping)

    # ── Synchronous helpers (run in the thread pool) ──────────────────────

    def _build_query(self, kind: str, filters: List[Filter]) -> datastore.Query:
        query = self._client.query(kind=kind)
        for name, operator, value in filters:
            query.add_filter(filter=PropertyFilter(name, operator, value))
        return query

    def _run_query(
        self,
        kind: str,
        filters: List[Filter],
        limit: Optional[int],
        cursor: Optional[str],
    ) -> QueryPage:
        query = self._build_query(kind, filters)

        if limit is None:
            records = [self._from_entity(entity) for entity in query.fetch()]
            return QueryPage(records=records, next_cursor=None, total=len(records))

        iterator = query.fetch(limit=limit, start_cursor=cursor)
        page = next(iterator.pages, [])
        records = [self._from_entity(entity) for entity in page]

        token = iterator.next_page_token
        if isinstance(token, bytes):
            token = token.decode("ascii")
        if token and not self._has_more(kind, filters, token):
            token = None

        count_query = self._build_query(kind, filters)
        count_query.keys_only()
        total = sum(1 for _ in count_query.fetch())

        return QueryPage(records=records, next_cursor=token or None, total=total)

    def _has_more(self, kind: str, filters: List[Filter], cursor: str) -> bool:
        lookahead = self._build_query(kind, filters)
        lookahead.keys_only()
        return any(True for _ in lookahead.fetch(limit=1, start_cursor=cursor))

    def _ping(self) -> None:
        query = self._client.query(kind="__kind__")
        query.keys_only()
        list(query.fetch(limit=1))

    @staticmethod
    def _normalize_cursor(cursor: str) -> str:
        """Cursors are URL-safe base64; restore stripped padding, reject anything else."""
        padded = cursor + "=" * (-len(cursor) % 4)
        try:
            base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        except (binascii.Error, UnicodeEncodeError, ValueError):
            raise ValidationError(message="Invalid pagination cursor", context={"cursor": cursor})
        return padded
