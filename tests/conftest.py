"""
tests/conftest.py: Shared pytest fixtures

The API talks to Supabase only through `get_supabase_client`, so tests swap
in FakeSupabase: an in-memory stand-in for the handful of query-builder
calls the routers make, recording every executed call.
"""
import os
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")

from fastapi.testclient import TestClient  # noqa: E402

from app.core.limiter import (  # noqa: E402
    MESSAGE_LIMIT,
    RECOMMENDATION_LIMIT,
    SlidingWindowLimiter,
    get_message_limiter,
    get_recommendation_limiter,
    limiter as route_limiter,
)
from app.core.config import Settings, get_settings  # noqa: E402
from app.core.security import get_current_user  # noqa: E402
from app.core.supabase_client import get_supabase_client  # noqa: E402
from app.main import app  # noqa: E402

PROFILE_ID = "11111111-1111-1111-1111-111111111111"
DOCTOR_USER_ID = "22222222-2222-2222-2222-222222222222"
OTHER_PROFILE_ID = "44444444-4444-4444-4444-444444444444"
OTHER_USER_ID = "55555555-5555-5555-5555-555555555555"
ADMIN_EMAIL = "admin@verified.doctor"


def _as_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op: Optional[str] = None
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*"):
        self.op = "select"
        return self

    def insert(self, row: Dict[str, Any]):
        self.op = "insert"
        self.payload = row
        return self

    def update(self, values: Dict[str, Any]):
        self.op = "update"
        self.payload = values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values: List[Any]):
        self.filters.append(("in", column, [str(v) for v in values]))
        return self

    def gte(self, column: str, value: Any):
        self.filters.append(("gte", column, value))
        return self

    def lt(self, column: str, value: Any):
        self.filters.append(("lt", column, value))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        for kind, column, value in self.filters:
            if kind == "eq" and str(row.get(column)) != str(value):
                return False
            if kind == "in" and str(row.get(column)) not in value:
                return False
            if kind == "gte" and not _as_datetime(row.get(column)) >= _as_datetime(value):
                return False
            if kind == "lt" and not _as_datetime(row.get(column)) < _as_datetime(value):
                return False
        return True

    def execute(self):
        self.db.calls.append((self.table, self.op))
        failure = self.db.failures.get((self.table, self.op))
        if failure is not None:
            raise failure

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                row = {
                    "id": str(uuid.uuid4()),
                    "created_at": datetime.now(timezone.utc).isoformat(),
                    **payload,
                }
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda r: _as_datetime(r.get(column)), reverse=desc)
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        failure = self.db.failures.get(("rpc", self.name))
        if failure is not None:
            raise failure
        if self.name == "increment_recommendation_count":
            self._bump("recommendation_count", self.params["profile_uuid"], 1)
        elif self.name == "increment_connection_count":
            self._bump("connection_count", self.params["profile_uuid"], 1)
        elif self.name == "decrement_connection_count":
            self._bump("connection_count", self.params["profile_uuid"], -1)
        elif self.name == "increment_connection_counts":
            self._bump("connection_count", self.params["profile1_uuid"], 1)
            self._bump("connection_count", self.params["profile2_uuid"], 1)
        return SimpleNamespace(data=None)

    def _bump(self, column: str, profile_id: str, delta: int) -> None:
        for profile in self.db.tables.get("profiles", []):
            if profile["id"] == profile_id:
                profile[column] = profile.get(column, 0) + delta


class FakeBucket:
    def __init__(self, db: "FakeSupabase", name: str):
        self.db = db
        self.name = name

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, Any]] = None):
        failure = self.db.failures.get(("storage", "upload"))
        if failure is not None:
            raise failure
        self.db.uploads.append((self.name, path, file_options or {}))
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def remove(self, paths: List[str]):
        self.db.removed.extend((self.name, path) for path in paths)
        return []


class FakeStorage:
    def __init__(self, db: "FakeSupabase"):
        self.db = db

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self.db, bucket)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.rpc_calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.uploads: List[tuple] = []
        self.removed: List[tuple] = []
        self.storage = FakeStorage(self)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def count_calls(self, table: str, op: str) -> int:
        return sum(1 for call in self.calls if call == (table, op))


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.tables["profiles"] = [{
        "id": PROFILE_ID,
        "user_id": DOCTOR_USER_ID,
        "handle": "dr-jane",
        "full_name": "Dr. Jane Doe",
        "recommendation_count": 0,
    }]
    return db


@pytest.fixture
def recommendation_limiter() -> SlidingWindowLimiter:
    # No storage: the limiter allows everything, like a deployment without Redis
    return SlidingWindowLimiter(RECOMMENDATION_LIMIT, prefix="test:recommendation")


@pytest.fixture
def message_limiter() -> SlidingWindowLimiter:
    return SlidingWindowLimiter(MESSAGE_LIMIT, prefix="test:message")


@pytest.fixture
def doctor_user() -> SimpleNamespace:
    return SimpleNamespace(id=DOCTOR_USER_ID, email="jane@example.com")


@pytest.fixture
def client(fake_db, recommendation_limiter, message_limiter):
    app.dependency_overrides[get_supabase_client] = lambda: fake_db
    app.dependency_overrides[get_recommendation_limiter] = lambda: recommendation_limiter
    app.dependency_overrides[get_message_limiter] = lambda: message_limiter
    route_limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client, doctor_user):
    app.dependency_overrides[get_current_user] = lambda: doctor_user
    return client


@pytest.fixture
def other_profile(fake_db) -> Dict[str, Any]:
    """A second doctor to connect with, invite or review."""
    row = {
        "id": OTHER_PROFILE_ID,
        "user_id": OTHER_USER_ID,
        "handle": "dr-omar",
        "full_name": "Omar Said",
        "specialty": "Cardiology",
        "is_verified": True,
        "connection_count": 0,
    }
    fake_db.tables["profiles"].append(row)
    return row


@pytest.fixture
def admin_client(client):
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=OTHER_USER_ID, email=ADMIN_EMAIL)
    app.dependency_overrides[get_settings] = lambda: Settings(ADMIN_EMAILS=ADMIN_EMAIL)
    return client
