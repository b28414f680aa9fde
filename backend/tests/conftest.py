"""
DevCamper Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the whole suite.
How:   No real database or network: services get a mocked AsyncSession, the
       query builder runs against an in-memory collection that implements
       the same `find` / `count_documents` protocol as SqlCollection, and
       HTTP tests use httpx.AsyncClient over ASGITransport with dependency
       overrides.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock standing in for AsyncSession
    ├── bootcamp_records: ten bootcamp dicts with staggered created_at
    ├── bootcamp_collection: InMemoryCollection over bootcamp_records
    ├── app: FastAPI app with get_db_session overridden
    ├── test_client: httpx AsyncClient bound to `app`
    └── auth_headers: Bearer header for a fake logged-in user
"""

import os

# Must run before any devcamper import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GEOCODER_API_KEY"] = "test-key-not-real"
os.environ["JWT_SECRET"] = "test-secret-with-enough-entropy-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Collection
# ══════════════════════════════════════════════════════════════════════════

def _as_number(value: Any) -> Any:
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


def _matches(record: Dict[str, Any], filter_expr: Dict[str, Any]) -> bool:
    for field, condition in filter_expr.items():
        actual = record.get(field)
        if not isinstance(condition, dict):
            expected = condition if isinstance(condition, list) else [condition]
            values = actual if isinstance(actual, list) else [actual]
            if not any(str(v) == str(e) for v in values for e in expected):
                return False
            continue
        for operator, raw in condition.items():
            if operator == "$in":
                options = [part.strip() for part in str(raw).split(",")]
                values = actual if isinstance(actual, list) else [actual]
                if not any(str(v) in options for v in values):
                    return False
            elif operator == "$gt" and not _as_number(actual) > _as_number(raw):
                return False
            elif operator == "$gte" and not _as_number(actual) >= _as_number(raw):
                return False
            elif operator == "$lt" and not _as_number(actual) < _as_number(raw):
                return False
            elif operator == "$lte" and not _as_number(actual) <= _as_number(raw):
                return False
    return True


class InMemoryQuery:
    """Chainable query mirroring SqlQuery; records every call it receives."""

    def __init__(self, records: List[Dict[str, Any]], relations: Dict[str, Any]):
        self.records = records
        self.relations = relations
        self.fields: Optional[List[str]] = None
        self.order: List[str] = []
        self.offset = 0
        self.max_rows: Optional[int] = None
        self.includes: list = []

    def select(self, fields):
        self.fields = list(fields)
        return self

    def sort(self, fields):
        self.order = list(fields)
        return self

    def skip(self, count):
        self.offset = count
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def populate(self, include):
        self.includes.append(include)
        return self

    async def all(self):
        rows = list(self.records)
        for spec in reversed(self.order):
            field = spec.lstrip("-")
            rows.sort(key=lambda r: r[field], reverse=spec.startswith("-"))
        end = None if self.max_rows is None else self.offset + self.max_rows
        rows = rows[self.offset:end]

        result = []
        for row in rows:
            if self.fields is None:
                item = dict(row)
            else:
                item = {k: v for k, v in row.items() if k == "id" or k in self.fields}
            for include in self.includes:
                item[include.relation] = self.relations.get(include.relation, [])
            result.append(item)
        return result


class InMemoryCollection:
    def __init__(self, records: List[Dict[str, Any]], relations: Optional[Dict[str, Any]] = None):
        self.records = records
        self.relations = relations or {}
        self.last_query: Optional[InMemoryQuery] = None
        self.find_calls: List[Dict[str, Any]] = []
        self.count_calls: List[Dict[str, Any]] = []

    def find(self, filter_expr=None):
        filter_expr = filter_expr or {}
        self.find_calls.append(filter_expr)
        matching = [r for r in self.records if _matches(r, filter_expr)]
        self.last_query = InMemoryQuery(matching, self.relations)
        return self.last_query

    async def count_documents(self, filter_expr=None):
        filter_expr = filter_expr or {}
        self.count_calls.append(filter_expr)
        return len([r for r in self.records if _matches(r, filter_expr)])


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock AsyncSession.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = bootcamp
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def bootcamp_records():
    """Ten bootcamps; index 9 is the newest, average_cost = 1000 * (i + 1)."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    careers = [["Web Development"], ["UI/UX", "Business"], ["Data Science"]]
    return [
        {
            "id": uuid4(),
            "name": f"Bootcamp {i}",
            "description": f"Description {i}",
            "email": f"camp{i}@example.com",
            "average_cost": 1000.0 * (i + 1),
            "housing": i % 2 == 0,
            "careers": careers[i % 3],
            "created_at": base + timedelta(days=i),
        }
        for i in range(10)
    ]


@pytest.fixture
def bootcamp_collection(bootcamp_records):
    return InMemoryCollection(bootcamp_records, relations={"courses": []})


@pytest.fixture
def app(mock_db_session):
    """The FastAPI app with the DB session dependency pointed at the mock."""
    from devcamper.database import get_db_session
    from devcamper.main import app as fastapi_app

    async def override_session():
        yield mock_db_session

    fastapi_app.dependency_overrides[get_db_session] = override_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def current_user():
    user = MagicMock()
    user.id = uuid4()
    user.name = "Jane Publisher"
    user.email = "jane@example.com"
    user.role = "publisher"
    return user


@pytest.fixture
def auth_headers(app, current_user):
    """Authenticate requests as `current_user` without touching the users table."""
    from devcamper.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = lambda: current_user
    return {"Authorization": "Bearer test-token"}
