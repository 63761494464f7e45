import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('SUPABASE_URL', 'https://example.supabase.co')
os.environ.setdefault('SUPABASE_SERVICE_KEY', 'service-role-key')
os.environ.setdefault('SUPABASE_JWT_SECRET', 'test-jwt-secret-with-enough-length-for-hs256')
os.environ.setdefault('STRIPE_SECRET_KEY', 'sk_test_x')
os.environ.setdefault('STRIPE_WEBHOOK_SECRET', 'whsec_test')
os.environ.setdefault('STRIPE_PRICE_ID', 'price_default')
os.environ.setdefault('BASE_URL', 'http://app.test')
os.environ['LOG_FILE'] = ''


class FakeQuery:
    """Just enough of the postgrest query builder for the services under test."""

    def __init__(self, store, table_name):
        self.store = store
        self.table_name = table_name
        self.action = "select"
        self.payload = None
        self.filters = []
        self.ordering = None
        self.row_limit = None

    def select(self, *_columns):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matching(self, rows):
        return [row for row in rows if all(check(row) for check in self.filters)]

    def execute(self):
        self.store.calls.append((self.table_name, self.action, self.payload))
        if self.store.error is not None:
            raise self.store.error

        rows = self.store.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            row = self.store.new_row(self.payload)
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.action == "update":
            matched = self._matching(rows)
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        result = self._matching(rows)
        if self.ordering:
            column, desc = self.ordering
            result = sorted(result, key=lambda row: row.get(column) or "", reverse=desc)
        if self.row_limit is not None:
            result = result[:self.row_limit]
        return SimpleNamespace(data=[dict(row) for row in result])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.error = None
        self._next_id = 1
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def new_row(self, payload):
        row = dict(payload)
        row.setdefault("id", self._next_id)
        row.setdefault("created_at", self._clock.isoformat())
        self._next_id += 1
        self._clock += timedelta(minutes=1)
        return row

    def seed(self, table_name, **values):
        row = self.new_row(values)
        self.tables.setdefault(table_name, []).append(row)
        return row

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def fake_auth_client():
    """Stands in for the per-request Supabase client used by the auth routes."""
    return SimpleNamespace(auth=SimpleNamespace(admin=SimpleNamespace()))


@pytest.fixture
def auth(fake_supabase, fake_auth_client, monkeypatch):
    from auth import middleware as middleware_module

    instance = middleware_module.AuthMiddleware(
        supabase_client=fake_supabase,
        auth_client_factory=lambda: fake_auth_client,
    )
    monkeypatch.setattr(middleware_module, "auth_middleware", instance)
    return instance


@pytest.fixture
def make_headers(auth):
    def _make(user_id="user-1", email="user1@example.com"):
        return {"Authorization": f"Bearer {auth.create_access_token(user_id, email)}"}
    return _make


@pytest.fixture
def client(auth):
    from fastapi.testclient import TestClient
    from index import app

    with TestClient(app) as test_client:
        yield test_client
