"""
Shared test fixtures.

Provides an in-memory Supabase stand-in with a chainable query builder,
a Magazord client wired to a mocked requests session, and FastAPI test
clients with both patched in.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import importlib
import re
from contextlib import ExitStack
from datetime import datetime
from types import SimpleNamespace
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count


def _ilike(value, pattern: str) -> bool:
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch)
        for ch in pattern
    )
    return re.fullmatch(regex, str(value or ""), flags=re.IGNORECASE | re.DOTALL) is not None


class MockSupabaseQuery:
    """Chainable query builder that runs against the table's rows on execute()."""

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._action = "select"
        self._payload = None
        self._on_conflict = None
        self._filters = []
        self._order = None
        self._range = None
        self._limit = None
        self._is_single = False
        self._count = None

    # --- actions ---

    def select(self, *args, count=None, **kwargs):
        self._count = count
        return self

    def insert(self, data):
        self._action, self._payload = "insert", data
        return self

    def upsert(self, data, on_conflict: str = "id", **kwargs):
        self._action, self._payload, self._on_conflict = "upsert", data, on_conflict
        return self

    def update(self, data):
        self._action, self._payload = "update", data
        return self

    def delete(self):
        self._action = "delete"
        return self

    # --- filters / modifiers ---

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._table.client.in_sizes.append(len(values))
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def ilike(self, column, pattern):
        self._filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    # --- execution ---

    def _matches(self, row) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        client = self._table.client
        client.calls.append((self._table.name, self._action, self._payload))

        error = client.failures.get((self._table.name, self._action))
        if error:
            raise Exception(error)

        handler = getattr(self, f"_execute_{self._action}")
        return handler()

    def _execute_select(self):
        rows = [dict(row) for row in self._table.rows if self._matches(row)]
        total = len(rows)
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc)
        if self._range:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        if self._is_single:
            return MockSupabaseResponse(data=rows[0] if rows else None, count=1 if rows else 0)
        return MockSupabaseResponse(data=rows, count=total)

    def _prepare(self, item: dict) -> dict:
        row = {**self._table.defaults, **dict(item)}
        if self._table.auto_id and "id" not in row:
            self._table.next_id += 1
            row["id"] = self._table.next_id
        return row

    def _execute_insert(self):
        items = self._payload if isinstance(self._payload, list) else [self._payload]
        inserted = [self._prepare(item) for item in items]
        self._table.rows.extend(inserted)
        return MockSupabaseResponse(data=[dict(row) for row in inserted])

    def _execute_upsert(self):
        items = self._payload if isinstance(self._payload, list) else [self._payload]
        key = self._on_conflict
        written = []
        for item in items:
            existing = next((row for row in self._table.rows if row.get(key) == item.get(key)), None)
            if existing is not None:
                existing.update(item)
                written.append(dict(existing))
            else:
                row = self._prepare(item)
                self._table.rows.append(row)
                written.append(dict(row))
        return MockSupabaseResponse(data=written)

    def _execute_update(self):
        updated = []
        for row in self._table.rows:
            if self._matches(row):
                row.update(self._payload)
                updated.append(dict(row))
        return MockSupabaseResponse(data=updated)

    def _execute_delete(self):
        removed = [row for row in self._table.rows if self._matches(row)]
        self._table.rows[:] = [row for row in self._table.rows if not self._matches(row)]
        return MockSupabaseResponse(data=[dict(row) for row in removed])


class MockSupabaseTable:
    """In-memory table."""

    def __init__(self, client, name: str, rows: list, auto_id: bool = False, defaults: dict = None):
        self.client = client
        self.name = name
        self.rows = rows
        self.auto_id = auto_id
        self.defaults = defaults or {}
        ids = [row["id"] for row in rows if isinstance(row.get("id"), int)]
        self.next_id = max(ids) if ids else 0

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery(self)

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
    """Mock Supabase client with stateful tables and a call log."""

    def __init__(self):
        self._tables = {}
        self.calls = []
        self.failures = {}
        self.in_sizes = []
        self.auth = MagicMock()

    def set_table_data(self, table_name: str, data: list, auto_id: bool = False, defaults: dict = None):
        """Configure rows for a table."""
        self._tables[table_name] = MockSupabaseTable(
            self, table_name, [dict(row) for row in data], auto_id=auto_id, defaults=defaults
        )

    def fail_on(self, table_name: str, action: str, message: str = "boom"):
        """Make every `action` on `table_name` raise."""
        self.failures[(table_name, action)] = message

    def rows(self, table_name: str) -> list:
        return self.table(table_name).rows

    def calls_for(self, table_name: str, action: str = None) -> list:
        return [
            call for call in self.calls
            if call[0] == table_name and (action is None or call[1] == action)
        ]

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self.set_table_data(name, [])
        return self._tables[name]


# ===================
# SINGLETONS
# ===================

SINGLETONS = [
    ("integrations.magazord", "_magazord_client"),
    ("services.catalog_service", "_catalog_service"),
    ("services.extras_service", "_extras_service"),
    ("services.supplier_service", "_supplier_service"),
    ("services.auth_service", "_auth_service"),
    ("services.sync_service", "_sync_service"),
    ("services.enrichment_service", "_enrichment_fetcher"),
    ("services.inventory_service", "_inventory_service"),
    ("services.price_service", "_price_service"),
    ("services.view_service", "_view_service"),
]

DB_MODULES = [
    "config.database",
    "services.catalog_service",
    "services.extras_service",
    "services.supplier_service",
    "services.auth_service",
]


def reset_singletons():
    for module_name, attr in SINGLETONS:
        setattr(importlib.import_module(module_name), attr, None)


# ===================
# MAGAZORD HELPERS
# ===================

def make_response(status_code: int = 200, json_body=None, text: str = None) -> MagicMock:
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if text is None:
        import json
        text = json.dumps(json_body) if json_body is not None else ""
    response.text = text
    response.content = text.encode("utf-8")
    if json_body is not None:
        response.json.return_value = json_body
    else:
        response.json.side_effect = ValueError("No JSON")
    return response


def catalog_envelope(items: list, has_more: bool = False, total: int = None) -> dict:
    return {"data": {"items": items, "total": len(items) if total is None else total, "has_more": has_more}}


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("catalogo", [
                {"sku": "A1", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock in every module that uses it.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("catalogo", [...])
    """
    reset_singletons()
    with ExitStack() as stack:
        for module_name in DB_MODULES:
            stack.enter_context(
                patch(f"{module_name}.get_supabase_client", return_value=mock_supabase)
            )
        yield mock_supabase
    reset_singletons()


@pytest.fixture
def http_session() -> MagicMock:
    """Mocked requests.Session; set .request.return_value / .side_effect."""
    return MagicMock()


@pytest.fixture
def magazord_client(http_session):
    """Fully configured MagazordClient on a mocked session."""
    from integrations.magazord import MagazordClient

    return MagazordClient(
        base_url="https://erp.test",
        token="tok",
        secret="sec",
        loja_id=7,
        cdn_base_url="https://cdn.test",
        deposito_id="3",
        tabela_preco_id="9",
        session=http_session,
    )


@pytest.fixture
def identity():
    from models.identity import Identity

    return Identity(id="user-1", email="ops@loja.test")


@pytest.fixture
def valid_token(mock_supabase):
    """Make mock_supabase accept 'good-token'."""
    def get_user(token):
        if token != "good-token":
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id="user-1", email="ops@loja.test"))

    mock_supabase.auth.get_user.side_effect = get_user
    return "good-token"


@pytest.fixture
def sample_suppliers() -> list:
    return [
        {"id": 1, "nome": "Acme Tecidos", "ativo": True, "created_at": "2025-01-10T10:00:00+00:00"},
        {"id": 2, "nome": "Bravo Malhas", "ativo": True, "created_at": "2025-01-11T10:00:00+00:00"},
        {"id": 3, "nome": "Coral Fios", "ativo": False, "created_at": "2025-01-12T10:00:00+00:00"},
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db, magazord_client):
    """
    FastAPI test client with mocked database and Magazord session.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase, http_session):
            response = test_client_with_mock_db.get("/api/catalog")
    """
    from fastapi.testclient import TestClient
    import integrations.magazord as magazord
    from main import app

    magazord._magazord_client = magazord_client
    yield TestClient(app)
    magazord._magazord_client = None
