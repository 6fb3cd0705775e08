from __future__ import annotations

import logging
from typing import Any

import httpx

from .settings import Settings
from .types import SupabaseError, SupabaseResult

logger = logging.getLogger(__name__)

_http: httpx.AsyncClient | None = None


class SupabaseConfigError(RuntimeError):
    pass


def _get_http() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(timeout=20)
    return _http


async def close_http() -> None:
    global _http
    if _http is not None:
        await _http.aclose()
        _http = None


def _filter_value(value: Any) -> str:
    # PostgREST expects lowercase literals for booleans and null.
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class QueryBuilder:
    """Accumulates a PostgREST read: ``select``, filters, ordering, limit."""

    def __init__(self, client: SupabaseClient, table: str) -> None:
        self._client = client
        self._table = table
        self._select = "*"
        self._filters: list[tuple[str, str]] = []
        self._order: list[str] = []
        self._limit: int | None = None

    def select(self, columns: str = "*") -> QueryBuilder:
        # Embedded resources are often written across lines; PostgREST wants no whitespace.
        self._select = "".join(columns.split()) or "*"
        return self

    def eq(self, column: str, value: Any) -> QueryBuilder:
        self._filters.append((column, f"eq.{_filter_value(value)}"))
        return self

    def not_(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._filters.append((column, f"not.{operator}.{_filter_value(value)}"))
        return self

    def order(self, column: str, *, ascending: bool = True) -> QueryBuilder:
        self._order.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._limit = max(0, int(count))
        return self

    def params(self) -> list[tuple[str, str]]:
        out = [("select", self._select), *self._filters]
        if self._order:
            out.append(("order", ",".join(self._order)))
        if self._limit is not None:
            out.append(("limit", str(self._limit)))
        return out

    async def execute(self) -> SupabaseResult:
        try:
            r = await self._client.http.get(
                self._client.rest_url(self._table),
                params=self.params(),
                headers=self._client.headers(),
            )
        except httpx.HTTPError as e:
            logger.warning("Supabase GET %s failed: %s", self._table, e.__class__.__name__)
            return SupabaseResult(error=SupabaseError(message=str(e) or e.__class__.__name__))

        if r.status_code >= 400:
            return SupabaseResult(error=_error_from_response(r))

        try:
            data = r.json() if r.content else []
        except ValueError:
            logger.warning("Supabase GET %s returned a non-JSON body", self._table)
            return SupabaseResult(error=SupabaseError(message="Invalid JSON in response body", status=r.status_code))
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            return SupabaseResult(
                error=SupabaseError(message="Expected a JSON array of rows", status=r.status_code)
            )
        return SupabaseResult(data=data)


def _error_from_response(r: httpx.Response) -> SupabaseError:
    try:
        body = r.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return SupabaseError(message=r.text, status=r.status_code)
    return SupabaseError(
        code=str(body.get("code") or ""),
        message=str(body.get("message") or r.text),
        details=_text_or_none(body.get("details")),
        hint=_text_or_none(body.get("hint")),
        status=r.status_code,
    )


def _text_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


class SupabaseClient:
    def __init__(self, url: str, key: str, *, http: httpx.AsyncClient | None = None) -> None:
        self._url = url.rstrip("/")
        self._key = key
        self._http = http

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http or _get_http()

    def rest_url(self, table: str) -> str:
        # Supabase PostgREST endpoint
        return f"{self._url}/rest/v1/{table}"

    def headers(self) -> dict[str, str]:
        return {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Accept": "application/json",
        }

    def from_(self, table: str) -> QueryBuilder:
        return QueryBuilder(self, table)


def supabase_admin(settings: Settings, *, http: httpx.AsyncClient | None = None) -> SupabaseClient:
    """Server-side client authenticated with the service-role key."""

    if not settings.supabase_url:
        raise SupabaseConfigError("Supabase is not configured. Set NEXT_PUBLIC_SUPABASE_URL.")
    if not settings.supabase_service_role_key:
        raise SupabaseConfigError("Supabase service role key is not configured. Set SUPABASE_SERVICE_ROLE_KEY.")
    return SupabaseClient(settings.supabase_url, settings.supabase_service_role_key, http=http)
