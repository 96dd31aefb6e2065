"""
Posts API Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── store:        In-memory stand-in for EntityStore (no Datastore needed)
    ├── verifier:     Token verifier that knows a fixed set of bearer tokens
    ├── oauth:        OAuth client that knows a fixed set of authorization codes
    ├── services:     Services container wired around the three fakes above
    ├── mock_client:  MagicMock shaped like google.cloud.datastore.Client
    └── test_client:  HTTPX AsyncClient for API endpoint testing

Tokens known to the fake verifier:
    alice-token → sub "alice"
    bob-token   → sub "bob"
"""

import os
from typing import Any, Dict, Iterable, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-secret-not-real"
os.environ["GOOGLE_REDIRECT_URI"] = "http://test/oauth"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "1"
os.environ["RETRY_MAX_WAIT"] = "1"

from app.datastore import QueryPage  # noqa: E402
from app.dependencies import Services, build_services  # noqa: E402
from app.exceptions import AuthenticationError, ValidationError  # noqa: E402
from app.services.auth_service import TokenVerifier  # noqa: E402


CLAIMS = {
    "alice-token": {
        "sub": "alice",
        "given_name": "Alice",
        "family_name": "Liddell",
        "iss": "https://accounts.google.com",
    },
    "bob-token": {
        "sub": "bob",
        "name": "Bob",
        "iss": "https://accounts.google.com",
    },
}


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeEntityStore:
    """
    Dict-backed EntityStore with the same async contract.

    Ids are allocated incrementally from 1 and handed out as strings.
    Cursors are the string offset of the next record; only "=" filters
    are supported.
    """

    def __init__(self):
        self.kinds: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.writes = 0
        self._next_id = 1

    async def put(
        self,
        kind: str,
        record: Dict[str, Any],
        entity_id: Optional[str] = None,
        exclude_from_indexes: Sequence[str] = (),
    ) -> str:
        if entity_id is None:
            entity_id = str(self._next_id)
            self._next_id += 1
        self.kinds.setdefault(kind, {})[entity_id] = {k: v for k, v in record.items() if k != "id"}
        self.writes += 1
        return entity_id

    async def get(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        data = self.kinds.get(kind, {}).get(str(entity_id))
        if data is None:
            return None
        return {**data, "id": str(entity_id)}

    async def delete(self, kind: str, entity_id: str) -> None:
        self.kinds.get(kind, {}).pop(str(entity_id), None)

    async def query(
        self,
        kind: str,
        filters: Iterable = (),
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ):
        records = [
            {**data, "id": entity_id}
            for entity_id, data in self.kinds.get(kind, {}).items()
            if all(data.get(name) == value for name, _op, value in filters)
        ]
        if limit is None:
            return QueryPage(records=records, next_cursor=None, total=len(records))

        if cursor is not None and not cursor.isdigit():
            raise ValidationError(message="Invalid pagination cursor")
        offset = int(cursor or 0)
        end = offset + limit
        next_cursor = str(end) if end < len(records) else None
        return QueryPage(records=records[offset:end], next_cursor=next_cursor, total=len(records))

    async def ping(self) -> None:
        return None

    def count(self, kind: str) -> int:
        return len(self.kinds.get(kind, {}))


class FakeVerifier:
    """Accepts the bearer tokens listed in CLAIMS and nothing else."""

    def __init__(self, claims: Optional[Dict[str, Dict[str, Any]]] = None, healthy: bool = True):
        self.claims = dict(CLAIMS if claims is None else claims)
        self.healthy = healthy

    async def authenticate(self, authorization: Optional[str]) -> str:
        token = TokenVerifier._bearer_token(authorization)
        return (await self.verify(token))["sub"]

    async def verify(self, token: str) -> Dict[str, Any]:
        if token not in self.claims:
            raise AuthenticationError("unknown test token")
        return dict(self.claims[token])

    async def check_health(self) -> bool:
        return self.healthy


class FakeOAuth:
    """Exchanges the codes in `codes` for ID tokens; any other code is rejected."""

    def __init__(self, codes: Optional[Dict[str, str]] = None):
        self.codes = codes if codes is not None else {"alice-code": "alice-token", "bob-code": "bob-token"}
        self.exchanged: List[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example.com/auth?client_id=test&state={state}"

    async def exchange_code(self, code: str) -> str:
        self.exchanged.append(code)
        if code not in self.codes:
            raise AuthenticationError("authorization code rejected")
        return self.codes[code]


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def store() -> FakeEntityStore:
    return FakeEntityStore()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def oauth() -> FakeOAuth:
    return FakeOAuth()


@pytest.fixture
def services(store, verifier, oauth) -> Services:
    return build_services(store, verifier, oauth)


@pytest.fixture
def mock_client():
    """
    A MagicMock shaped like google.cloud.datastore.Client.

    key() returns a MagicMock whose id_or_name is the id it was built with
    (or None for an incomplete key, to be completed by put()).
    """
    client = MagicMock()
    client.project = "test-project"

    def make_key(kind, entity_id=None):
        key = MagicMock()
        key.kind = kind
        key.id_or_name = entity_id
        return key

    client.key.side_effect = make_key
    return client


@pytest_asyncio.fixture
async def test_client(services):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient talking to an app built around the fakes.
    How:     ASGITransport routes requests directly to the app; the lifespan
             does not run, so nothing touches Google.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from app.main import create_app

    app = create_app(services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
