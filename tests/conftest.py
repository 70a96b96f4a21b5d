# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets test environment variables before the app is imported, and provides an
# in-memory stand-in for the Supabase client so routes and services run
# against dict rows instead of a real project.
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# app.config builds its Settings object at import time

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest


# =============================================================================
# In-memory Supabase
# =============================================================================

UNIQUE_KEYS = {
    "users": [("email",), ("client_identifier",)],
    "clients": [("coach_id", "user_id")],
    "client_tasks": [("client_id", "task_id")],
    "planning_groups": [("access_token",)],
    "planning_idea_votes": [("idea_id", "participant_id")],
    "planning_event_participants": [("event_id", "participant_id")],
}

COLUMN_DEFAULTS = {
    "users": {"has_auth_access": True},
    "client_tasks": {"status": "pending", "completed_at": None},
    "messages": {"is_read": False, "read_at": None},
    "planning_ideas": {"promoted_to_event_id": None},
    "planning_events": {"is_archived": False},
}

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, data: List[dict], count: Optional[int] = None):
        self.data = data
        self.count = count


def _like_to_regex(pattern: str):
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self._op = "select"
        self._columns = "*"
        self._count = None
        self._payload: Any = None
        self._filters: List[Callable[[dict], bool]] = []
        self._order: List[tuple] = []
        self._limit: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._op = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict):
        self._op = "update"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column: str, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column: str, value):
        expected = None if value in (None, "null") else value
        self._filters.append(lambda row: row.get(column) is expected)
        return self

    def like(self, column: str, pattern: str):
        regex = _like_to_regex(pattern)
        self._filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))
        return self

    def gte(self, column: str, value):
        self._filters.append(lambda row: row.get(column) is not None and str(row[column]) >= str(value))
        return self

    def order(self, column: str, desc: bool = False):
        self._order.append((column, desc))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def _project(self, row: dict) -> dict:
        if self._columns.strip() == "*":
            return dict(row)
        columns = [c.strip() for c in self._columns.split(",")]
        return {c: row.get(c) for c in columns}

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> FakeResponse:
        self.db.check_failure(self.table_name, self._op)
        with self.db.lock:
            if self._op == "insert":
                return self._execute_insert()
            rows = self.db.tables.setdefault(self.table_name, [])
            matched = [row for row in rows if self._matches(row)]
            if self._op == "update":
                for row in matched:
                    row.update(self._payload)
                return FakeResponse([dict(row) for row in matched])
            if self._op == "delete":
                self.db.tables[self.table_name] = [row for row in rows if row not in matched]
                return FakeResponse([dict(row) for row in matched])

            for column, desc in reversed(self._order):
                matched.sort(
                    key=lambda row: (row.get(column) is None, str(row.get(column) or "")),
                    reverse=desc,
                )
            total = len(matched)
            if self._limit is not None:
                matched = matched[:self._limit]
            return FakeResponse([self._project(row) for row in matched], total if self._count else None)

    def _execute_insert(self) -> FakeResponse:
        payloads = self._payload if isinstance(self._payload, list) else [self._payload]
        rows = self.db.tables.setdefault(self.table_name, [])
        new_rows = []
        for payload in payloads:
            row = dict(COLUMN_DEFAULTS.get(self.table_name, {}))
            row.update(payload)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", self.db.next_timestamp())
            for key in UNIQUE_KEYS.get(self.table_name, []):
                values = tuple(row.get(k) for k in key)
                if None in values:
                    continue
                if any(tuple(r.get(k) for k in key) == values for r in rows + new_rows):
                    raise Exception(f"duplicate key value violates unique constraint on {self.table_name}{key}")
            new_rows.append(row)
        rows.extend(new_rows)
        for row in new_rows:
            self.db.notify(self.table_name, "INSERT", row)
        return FakeResponse([dict(row) for row in new_rows])


class FakeAdminAuth:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth

    def create_user(self, attributes: dict):
        user = self.auth.register(attributes["email"], attributes["password"])
        return SimpleNamespace(user=user)

    def delete_user(self, user_id: str):
        self.auth.deleted.append(user_id)
        self.auth.users = {e: u for e, u in self.auth.users.items() if u.id != user_id}

    def list_users(self, page: int = 1, per_page: int = 50):
        users = list(self.auth.users.values())
        start = (page - 1) * per_page
        return users[start:start + per_page]

    def sign_out(self, jwt: str, scope: str = "global"):
        self.auth.signed_out.append((jwt, scope))


class FakeAuth:
    """Supabase Auth with email/password users and 'token-{id}' access tokens"""

    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, str] = {}
        self.deleted: List[str] = []
        self.signed_out: List[tuple] = []
        self.admin = FakeAdminAuth(self)

    def register(self, email: str, password: str) -> SimpleNamespace:
        email = email.lower()
        if email in self.users:
            raise Exception("A user with this email address has already been registered")
        user = SimpleNamespace(id=str(uuid.uuid4()), email=email, user_metadata={}, app_metadata={})
        self.users[email] = user
        self.passwords[email] = password
        return user

    def token_for(self, user) -> str:
        return f"token-{user.id}"

    def sign_up(self, credentials: dict):
        email = credentials["email"].lower()
        if email in self.users:
            raise Exception("User already registered")
        return SimpleNamespace(user=self.register(email, credentials["password"]), session=None)

    def sign_in_with_password(self, credentials: dict):
        email = credentials["email"].lower()
        user = self.users.get(email)
        if not user or self.passwords.get(email) != credentials["password"]:
            raise Exception("Invalid login credentials")
        session = SimpleNamespace(
            access_token=self.token_for(user),
            refresh_token=f"refresh-{user.id}",
            expires_at=1900000000,
        )
        return SimpleNamespace(user=user, session=session)

    def get_user(self, jwt: str):
        for user in self.users.values():
            if self.token_for(user) == jwt:
                return SimpleNamespace(user=user)
        raise Exception("invalid JWT: unable to parse or verify signature")


class FakeSupabase:
    """Just enough of supabase.Client for the services: table queries and auth"""

    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.auth = FakeAuth()
        self.lock = threading.RLock()
        self.failures: Dict[tuple, Exception] = {}
        self.listeners: List[Callable[[str, str, dict], None]] = []
        self._clock = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        self._clock += 1
        return (_BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def fail(self, table: str, op: str, error: Optional[Exception] = None):
        """Make the next matching query raise"""
        self.failures[(table, op)] = error or RuntimeError(f"forced {op} failure on {table}")

    def check_failure(self, table: str, op: str):
        error = self.failures.pop((table, op), None)
        if error:
            raise error

    def notify(self, table: str, event: str, row: dict):
        for listener in list(self.listeners):
            listener(table, event, dict(row))

    def rows(self, table: str) -> List[dict]:
        return self.tables.get(table, [])

    def seed(self, table: str, **row) -> dict:
        return self.table(table).insert(row).execute().data[0]


# =============================================================================
# In-memory realtime
# =============================================================================

class FakeChannel:
    def __init__(self, name: str, status: str):
        self.name = name
        self.status = status
        self.listeners: List[tuple] = []
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.removed = False

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.listeners.append((event, table, filter, callback))
        return self

    async def subscribe(self, callback=None):
        self.loop = asyncio.get_running_loop()
        if callback:
            callback(self.status, None)
        return self

    def deliver(self, table: str, event: str, record: dict):
        if self.loop is None or self.removed:
            return
        for listen_event, listen_table, row_filter, callback in self.listeners:
            if listen_table not in ("*", table) or listen_event not in ("*", event):
                continue
            if row_filter:
                column, value = row_filter.split("=eq.", 1)
                if str(record.get(column)) != value:
                    continue
            payload = {"data": {"type": event, "table": table, "record": dict(record)}, "ids": []}
            self.loop.call_soon_threadsafe(callback, payload)


class FakeRealtimeClient:
    """Async client stand-in; channels receive the inserts made through `db`"""

    def __init__(self, db: Optional[FakeSupabase] = None, statuses: Optional[List[str]] = None):
        self.channels: List[FakeChannel] = []
        self.created: List[FakeChannel] = []
        self.statuses = list(statuses or [])
        if db is not None:
            db.listeners.append(self._dispatch)

    def channel(self, name: str) -> FakeChannel:
        status = self.statuses.pop(0) if self.statuses else "SUBSCRIBED"
        channel = FakeChannel(name, status)
        self.channels.append(channel)
        self.created.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel):
        channel.removed = True
        if channel in self.channels:
            self.channels.remove(channel)

    def _dispatch(self, table: str, event: str, record: dict):
        for channel in list(self.channels):
            channel.deliver(table, event, record)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def realtime_client(db):
    return FakeRealtimeClient(db)


@pytest.fixture
def app_client(db, realtime_client):
    """TestClient wired to the in-memory Supabase, with process-wide state reset"""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.core import rate_limiter
    from app.core.csrf import csrf_store
    from app.database.supabase_client import get_supabase, get_auth_supabase, get_async_supabase
    from app.modules.auth.service import clear_auth_cache

    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_auth_supabase] = lambda: db
    app.dependency_overrides[get_async_supabase] = lambda: realtime_client
    csrf_store.reset()
    rate_limiter.reset_all()
    clear_auth_cache()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        csrf_store.reset()
        rate_limiter.reset_all()
        clear_auth_cache()


def make_user(db: FakeSupabase, role: str, name: str, email: str, password: str = "Secret123") -> dict:
    """Auth user plus users profile; returns profile, token and auth headers"""
    auth_user = db.auth.register(email, password)
    profile = db.seed(
        "users",
        auth_user_id=auth_user.id,
        email=email,
        client_identifier=None,
        name=name,
        role=role,
        has_auth_access=True,
    )
    token = db.auth.token_for(auth_user)
    return {
        "profile": profile,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
        "password": password,
    }


@pytest.fixture
def coach(db):
    return make_user(db, "coach", "Coach Carter", "coach@example.com")


@pytest.fixture
def other_coach(db):
    return make_user(db, "coach", "Other Coach", "other@example.com")


@pytest.fixture
def client_user(db, coach):
    """A client with a login, linked to `coach`; adds the clients row as `client`"""
    user = make_user(db, "client", "Casey Client", "client@example.com")
    user["client"] = db.seed(
        "clients",
        coach_id=coach["profile"]["id"],
        user_id=user["profile"]["id"],
        name="Casey Client",
    )
    return user
