# tests/conftest.py
"""
Pytest configuration and fixtures for the maintenance service test suite.

Provides:
- A temp-file SQLite entity store and local storage under tmp_path
- A FixedClock pinned to NOW
- Factories that seed tasks, pets, invite codes, notifications and images
- A FastAPI test client wired to those through the container
- A chainable Supabase mock for the Supabase adapters
"""

import os
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, List, Optional, Union
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Set test environment before imports
os.environ["SITTR_ENV"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_KEY", None)

from src.sittr.adapters.database.sqlite import SQLiteEntityStore
from src.sittr.adapters.storage.local import LocalStorageAdapter
from src.sittr.config import SittrConfig
from src.sittr.core.clock import FixedClock
from src.sittr.core.container import container
from src.sittr.core.models import (
    DateRange,
    GroupInviteCode,
    GroupRole,
    Image,
    Notification,
    NotificationType,
    Pet,
    Task,
)
from src.sittr.services.notification_dispatcher import NotificationDispatcher

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
CRON_SECRET = "test-cron-secret"


# ============== Core Fixtures ==============

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def config(tmp_path) -> SittrConfig:
    return SittrConfig(
        environment="test",
        cron_secret=CRON_SECRET,
        database_type="sqlite",
        database_path=str(tmp_path / "sittr.db"),
        storage_type="local",
        local_storage_path=str(tmp_path / "uploads"),
        job_workers=4,
        scheduler_enabled=False,
    )


@pytest.fixture
def store(config) -> SQLiteEntityStore:
    return SQLiteEntityStore(config.database_path)


@pytest.fixture
def storage(config) -> LocalStorageAdapter:
    return LocalStorageAdapter(config.local_storage_path)


@pytest.fixture
def dispatcher(store, clock) -> NotificationDispatcher:
    return NotificationDispatcher(store, clock)


@pytest.fixture
def deps(store, clock, config, dispatcher, storage) -> Dict[str, Any]:
    """Keyword arguments accepted by every job class and operation."""
    return {
        "store": store,
        "clock": clock,
        "config": config,
        "dispatcher": dispatcher,
        "storage": storage,
    }


# ============== Seed Factories ==============

@pytest.fixture
def make_task(store) -> Callable[..., Task]:
    """Save a task. Pass due_date=... for due mode or date_range=(start, end)."""
    def _make(
        due_date: Optional[datetime] = None,
        date_range: Optional[tuple] = None,
        **fields,
    ) -> Task:
        fields.setdefault("id", f"task-{uuid.uuid4().hex[:8]}")
        fields.setdefault("owner_id", "owner-1")
        fields.setdefault("name", "Feed Rex")
        if date_range is not None:
            task = Task(due_mode=False, date_range=DateRange(*date_range), **fields)
        else:
            task = Task(due_mode=True, due_date=due_date, **fields)
        return store.save_task(task)
    return _make


@pytest.fixture
def make_pet(store) -> Callable[..., Pet]:
    def _make(dob: Optional[date], **fields) -> Pet:
        fields.setdefault("id", f"pet-{uuid.uuid4().hex[:8]}")
        fields.setdefault("owner_id", "owner-1")
        fields.setdefault("name", "Rex")
        return store.save_pet(Pet(dob=dob, **fields))
    return _make


@pytest.fixture
def make_invite_code(store, config) -> Callable[..., GroupInviteCode]:
    def _make(created_at: datetime, **fields) -> GroupInviteCode:
        fields.setdefault("id", f"code-{uuid.uuid4().hex[:8]}")
        fields.setdefault("group_id", "group-1")
        fields.setdefault("code", uuid.uuid4().hex[:10])
        fields.setdefault("ttl", config.invite_code_ttl)
        return store.save_invite_code(GroupInviteCode(created_at=created_at, **fields))
    return _make


@pytest.fixture
def make_notification(store) -> Callable[..., Notification]:
    def _make(created_at: datetime, **fields) -> Notification:
        fields.setdefault("user_id", "owner-1")
        fields.setdefault("notification_type", NotificationType.OVERDUE_TASK)
        fields.setdefault("message", "Task is overdue!")
        fields.setdefault("idempotency_key", f"test:{uuid.uuid4().hex}")
        return store.save_notification(Notification(created_at=created_at, **fields))
    return _make


@pytest.fixture
def make_image(store, storage, config) -> Callable[..., Image]:
    """Save an image row and, unless with_object=False, its storage object."""
    def _make(created_at: datetime, with_object: bool = True, **fields) -> Image:
        fields.setdefault("id", f"img-{uuid.uuid4().hex[:8]}")
        fields.setdefault("file_key", f"{fields['id']}.jpg")
        image = Image(created_at=created_at, **fields)
        if with_object:
            storage.upload_file(b"\xff\xd8jpeg", image.file_key, config.storage_bucket)
        return store.save_image(image)
    return _make


@pytest.fixture
def group(store) -> str:
    """Group with an owner, a member and a pending invitee."""
    store.add_group_member("group-1", "owner-1", GroupRole.OWNER)
    store.add_group_member("group-1", "member-1", GroupRole.MEMBER)
    store.add_group_member("group-1", "pending-1", GroupRole.PENDING)
    return "group-1"


# ============== FastAPI Client Fixtures ==============

@pytest.fixture
def wired_container(config, clock, store, storage):
    """Point the global container at the test instances."""
    container.reset()
    container.configure(config=config, clock=clock, store=store, storage=storage)
    yield container
    container.reset()


@pytest.fixture
def client(wired_container) -> Generator[TestClient, None, None]:
    from src.sittr.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}


# ============== Supabase Mock Fixtures ==============

class MockSupabaseResponse:
    """Mock response from Supabase operations."""
    def __init__(self, data: Any = None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else 1)


class MockSupabaseTable:
    """
    Mock Supabase table with chainable methods.

    Filters are applied to the in-memory rows on execute(). Comparisons are
    plain Python comparisons, so timestamps must be seeded in the same string
    format the adapters write.
    """

    def __init__(self, table_name: str, data_store: Dict[str, List[Dict]]):
        self.table_name = table_name
        self._data_store = data_store
        self._filters: List[Callable[[Dict], bool]] = []
        self._negate_next = False
        self._limit = None
        self._action = "select"
        self._payload: Any = None
        self._on_conflict: Optional[List[str]] = None
        self._ignore_duplicates = False

    # --- actions ---

    def select(self, columns: str = "*"):
        self._action = "select"
        return self

    def insert(self, data: Union[Dict, List[Dict]]):
        self._action = "insert"
        self._payload = data if isinstance(data, list) else [data]
        return self

    def upsert(self, data: Union[Dict, List[Dict]], on_conflict: str = "", ignore_duplicates: bool = False, **_):
        self._action = "upsert"
        self._payload = data if isinstance(data, list) else [data]
        self._on_conflict = [c.strip() for c in on_conflict.split(",")] if on_conflict else ["id"]
        self._ignore_duplicates = ignore_duplicates
        return self

    def update(self, data: Dict):
        self._action = "update"
        self._payload = data
        return self

    def delete(self):
        self._action = "delete"
        return self

    # --- filters ---

    def _add(self, predicate: Callable[[Dict], bool]):
        if self._negate_next:
            self._filters.append(lambda row, p=predicate: not p(row))
            self._negate_next = False
        else:
            self._filters.append(predicate)
        return self

    @property
    def not_(self):
        self._negate_next = True
        return self

    def eq(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) != value)

    def lt(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) is not None and row[column] < value)

    def lte(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) is not None and row[column] <= value)

    def gte(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) is not None and row[column] >= value)

    def is_(self, column: str, value: str):
        assert value == "null"
        return self._add(lambda row: row.get(column) is None)

    def in_(self, column: str, values: List[Any]):
        return self._add(lambda row: row.get(column) in values)

    def limit(self, count: int):
        self._limit = count
        return self

    # --- execution ---

    def _rows(self) -> List[Dict]:
        return self._data_store.setdefault(self.table_name, [])

    def _matching(self) -> List[Dict]:
        return [r for r in self._rows() if all(f(r) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        """Execute the query and return results."""
        rows = self._rows()
        if self._action == "insert":
            inserted = [dict(item) for item in self._payload]
            rows.extend(inserted)
            return MockSupabaseResponse(data=inserted)

        if self._action == "upsert":
            written = []
            for item in self._payload:
                existing = next(
                    (r for r in rows if all(r.get(c) == item.get(c) for c in self._on_conflict)),
                    None,
                )
                if existing is None:
                    rows.append(dict(item))
                    written.append(dict(item))
                elif not self._ignore_duplicates:
                    existing.update(item)
                    written.append(dict(existing))
            return MockSupabaseResponse(data=written)

        matched = self._matching()
        if self._action == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        if self._action == "delete":
            self._data_store[self.table_name] = [
                r for r in rows if not any(r is m for m in matched)
            ]
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        if self._limit is not None:
            matched = matched[:self._limit]
        return MockSupabaseResponse(data=[dict(r) for r in matched])


class MockSupabaseClient:
    """Mock Supabase client for testing."""

    def __init__(self):
        self._data_store: Dict[str, List[Dict]] = {}
        self._rpc_results: Dict[str, Any] = {}
        self.storage = MagicMock()

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(name, self._data_store)

    def rpc(self, function_name: str, params: Dict = None):
        """Mock RPC call. A callable result is called with (client, params)."""
        result = self._rpc_results.get(function_name, [])
        if callable(result):
            result = result(self, params or {})
        mock = MagicMock()
        mock.execute.return_value = MockSupabaseResponse(data=result)
        return mock

    def set_rpc_result(self, function_name: str, result: Any):
        """Set the result (or a callable producing it) for an RPC call."""
        self._rpc_results[function_name] = result

    def seed_data(self, table_name: str, data: List[Dict]):
        """Seed test data into a table."""
        self._data_store[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> List[Dict]:
        return self._data_store.get(table_name, [])

    def clear(self):
        """Clear all test data."""
        self._data_store.clear()
        self._rpc_results.clear()


@pytest.fixture(scope="function")
def mock_supabase() -> MockSupabaseClient:
    """
    Mock Supabase client for testing.

    Stores data in memory and supports the chainable calls the adapters use.
    """
    return MockSupabaseClient()
