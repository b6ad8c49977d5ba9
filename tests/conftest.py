"""
Shared test fixtures.

See STANDARDS_TESTING.md for patterns.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require Supabase credentials at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import copy
import uuid
import pytest
from contextlib import ExitStack
from unittest.mock import patch
from typing import Generator, Optional

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Reads and writes go to the owning client's in-memory tables, so a
    write is visible to every later query in the same test.
    """

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._operation = "select"
        self._payload = None
        self._upsert_options: dict = {}
        self._filters: list = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None
        self._is_single = False

    # Operations

    def select(self, *args, **kwargs):
        self._operation = "select"
        return self

    def insert(self, data):
        self._operation = "insert"
        self._payload = data
        return self

    def upsert(self, data, on_conflict: str = "id", ignore_duplicates: bool = False, **kwargs):
        self._operation = "upsert"
        self._payload = data
        self._upsert_options = {"on_conflict": on_conflict, "ignore_duplicates": ignore_duplicates}
        return self

    def update(self, data):
        self._operation = "update"
        self._payload = data
        return self

    def delete(self):
        self._operation = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    # Execution

    def _matches(self, row: dict) -> bool:
        return all(check(row) for check in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client.check_failure(self._table, self._operation)
        rows = self._client.rows(self._table)

        if self._operation == "insert":
            return MockSupabaseResponse(data=self._insert(rows))
        if self._operation == "upsert":
            return MockSupabaseResponse(data=self._upsert(rows))
        if self._operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self._payload))
                    updated.append(copy.deepcopy(row))
            return MockSupabaseResponse(data=updated)
        if self._operation == "delete":
            removed = [row for row in rows if self._matches(row)]
            rows[:] = [row for row in rows if not self._matches(row)]
            return MockSupabaseResponse(data=removed)

        selected = [copy.deepcopy(row) for row in rows if self._matches(row)]
        for column, desc in reversed(self._order):
            selected.sort(
                key=lambda row: (row.get(column) is None, "" if row.get(column) is None else row.get(column)),
                reverse=desc,
            )
        total = len(selected)
        if self._range is not None:
            start, end = self._range
            selected = selected[start:end + 1]
        if self._limit is not None:
            selected = selected[:self._limit]

        if self._is_single:
            data = selected[0] if selected else None
            return MockSupabaseResponse(data=data, count=1 if data else 0)
        return MockSupabaseResponse(data=selected, count=total)

    def _insert(self, rows: list) -> list:
        data = self._payload if isinstance(self._payload, list) else [self._payload]
        inserted = []
        for item in data:
            item = copy.deepcopy(item)
            item.setdefault("id", str(uuid.uuid4()))
            rows.append(item)
            inserted.append(copy.deepcopy(item))
        return inserted

    def _upsert(self, rows: list) -> list:
        data = self._payload if isinstance(self._payload, list) else [self._payload]
        key = self._upsert_options.get("on_conflict", "id")
        ignore = self._upsert_options.get("ignore_duplicates", False)
        self._client.upserts.append({"table": self._table, "rows": copy.deepcopy(data), **self._upsert_options})

        written = []
        for item in data:
            existing = next((row for row in rows if row.get(key) == item.get(key)), None)
            if existing is not None:
                if ignore:
                    continue
                existing.update(copy.deepcopy(item))
            else:
                rows.append(copy.deepcopy(item))
            written.append(copy.deepcopy(item))
        return written


class MockSupabaseTable:
    """Entry point for one table; each call starts a fresh query."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery(self._client, self._name)

    def select(self, *args, **kwargs):
        return self._query().select(*args, **kwargs)

    def insert(self, data):
        return self._query().insert(data)

    def upsert(self, data, **kwargs):
        return self._query().upsert(data, **kwargs)

    def update(self, data):
        return self._query().update(data)

    def delete(self):
        return self._query().delete()


class MockSupabaseClient:
    """Mock Supabase client backed by in-memory tables."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._failures: dict[str, dict] = {}
        self.upserts: list[dict] = []

    def set_table_data(self, table_name: str, data: list):
        """Configure the rows of a table."""
        self._tables[table_name] = copy.deepcopy(data)

    def get_table_data(self, table_name: str) -> list:
        """Current rows of a table."""
        return copy.deepcopy(self._tables.get(table_name, []))

    def rows(self, table_name: str) -> list:
        return self._tables.setdefault(table_name, [])

    def fail_table(
        self,
        table_name: str,
        message: str = "connection reset",
        times: Optional[int] = 1,
        operations: tuple = ("insert", "upsert", "update", "delete"),
    ):
        """Make the next ``times`` writes to a table raise (None: every write)."""
        self._failures[table_name] = {"message": message, "times": times, "operations": operations}

    def check_failure(self, table_name: str, operation: str):
        failure = self._failures.get(table_name)
        if not failure or operation not in failure["operations"]:
            return
        if failure["times"] is not None:
            failure["times"] -= 1
            if failure["times"] <= 0:
                del self._failures[table_name]
        raise Exception(failure["message"])

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, name)


# ===================
# FIXTURES
# ===================

PATCHED_MODULES = (
    "config.database",
    "services.import_session_service",
    "services.piece_service",
    "services.project_service",
    "services.warehouse_service",
    "services.volume_service",
    "services.dashboard_service",
)


def _reset_services():
    """Drop service singletons and live import sessions."""
    import services.piece_service as piece_service
    import services.project_service as project_service
    import services.warehouse_service as warehouse_service
    import services.volume_service as volume_service
    import services.dashboard_service as dashboard_service
    from services.preview_cache_service import clear_sessions

    piece_service._piece_service = None
    project_service._project_service = None
    warehouse_service._warehouse_service = None
    volume_service._volume_service = None
    dashboard_service._dashboard_service = None
    clear_sessions()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("pieces", [
                {"id": "ws_BC001", "status": "PENDING", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("pieces", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    _reset_services()
    with ExitStack() as stack:
        for module in PATCHED_MODULES:
            stack.enter_context(
                patch(f"{module}.get_supabase_client", return_value=mock_supabase)
            )
        yield mock_supabase
    _reset_services()


@pytest.fixture
def workspace_id() -> str:
    from config import settings
    return settings.workspace_id


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("pieces", [...])
            response = test_client_with_mock_db.get("/api/pieces")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
