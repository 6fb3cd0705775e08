from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator, Callable
from functools import partial
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from budget_api.deps import get_database, get_supabase_factory
from budget_api.main import app
from budget_api.settings import Settings, get_settings
from budget_api.supabase import supabase_admin

_ENV_KEYS = (
    "NODE_ENV",
    "LOG_LEVEL",
    "NEXT_PUBLIC_SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "DATABASE_URL",
    "PGHOST",
    "PGPORT",
    "PGDATABASE",
    "PGUSER",
    "PGPASSWORD",
    "PGSSLMODE",
)

SUPABASE_URL = "https://abcproj.supabase.co"
ANON_KEY = "anon-key-value-do-not-leak"
SERVICE_KEY = "service-role-key-do-not-leak"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**env: Any) -> Settings:
        return Settings(_env_file=None, **env)

    return _make


@pytest.fixture
def configured_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings(
        NEXT_PUBLIC_SUPABASE_URL=SUPABASE_URL,
        NEXT_PUBLIC_SUPABASE_ANON_KEY=ANON_KEY,
        SUPABASE_SERVICE_ROLE_KEY=SERVICE_KEY,
        NODE_ENV="test",
    )


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FakePostgrest:
    """Serves PostgREST-style reads from in-memory tables (eq / not.is.null / order)."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables = tables or {}
        self.requests: list[httpx.Request] = []
        self.respond_with: tuple[int, Any] | None = None
        self.raise_exc: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.respond_with is not None:
            status, body = self.respond_with
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)

        table = request.url.path.rsplit("/", 1)[-1]
        rows = [dict(r) for r in self.tables.get(table, [])]
        for key, value in request.url.params.multi_items():
            if key in {"select", "order", "limit"}:
                continue
            op, _, operand = value.partition(".")
            if op == "eq":
                rows = [r for r in rows if _literal(r.get(key)) == operand]
            elif op == "not" and operand == "is.null":
                rows = [r for r in rows if r.get(key) is not None]

        order = request.url.params.get("order")
        if order:
            for part in reversed(order.split(",")):
                column, _, direction = part.partition(".")
                rows.sort(key=lambda r: r[column], reverse=direction == "desc")
        return httpx.Response(200, json=rows)


@pytest.fixture
def postgrest() -> FakePostgrest:
    return FakePostgrest()


class FakeConnection:
    def __init__(self, rows: list[Any] | None = None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def fetch(self, sql: str, *args: Any) -> list[Any]:
        self.calls.append((sql, args))
        if self.error is not None:
            raise self.error
        return self.rows


class _Acquire:
    def __init__(self, pool: FakePool) -> None:
        self._pool = pool

    async def __aenter__(self) -> FakeConnection:
        if self._pool.acquire_error is not None:
            raise self._pool.acquire_error
        self._pool.acquired += 1
        return self._pool.conn

    async def __aexit__(self, *exc: Any) -> bool:
        self._pool.released += 1
        return False


class FakePool:
    def __init__(self, conn: FakeConnection | None = None, acquire_error: Exception | None = None) -> None:
        self.conn = conn or FakeConnection()
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0
        self.closed = 0

    def acquire(self) -> _Acquire:
        return _Acquire(self)

    async def close(self) -> None:
        self.closed += 1


@pytest.fixture
def api_client(postgrest: FakePostgrest):
    """Factory for an in-process client with settings, Supabase transport and database swapped in."""

    @contextlib.asynccontextmanager
    async def _client(settings: Settings, db: Any = None) -> AsyncIterator[AsyncClient]:
        http = httpx.AsyncClient(transport=httpx.MockTransport(postgrest))
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_supabase_factory] = lambda: partial(supabase_admin, settings, http=http)
        if db is not None:
            app.dependency_overrides[get_database] = lambda: db
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
                yield client
        finally:
            app.dependency_overrides.clear()
            await http.aclose()

    return _client
