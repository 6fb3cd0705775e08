from __future__ import annotations

import datetime as dt
import logging
import math
import re
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from .deps import SupabaseFactory, get_supabase_factory
from .errors import handle_supabase_error
from .settings import Settings, get_settings
from .types import EnvCheckReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_URL_PREFIX_LEN = 20


def _error(status: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, **extra})


def _utc_timestamp() -> str:
    now = dt.datetime.now(dt.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_env_report(settings: Settings) -> EnvCheckReport:
    """Presence flags and a truncated URL preview; key values are never copied in."""

    url = settings.supabase_url
    return EnvCheckReport(
        has_supabase_url=bool(url),
        has_supabase_anon_key=bool(settings.supabase_anon_key),
        has_service_role_key=bool(settings.supabase_service_role_key),
        supabase_url_prefix=f"{url[:_URL_PREFIX_LEN]}..." if url else "Not set",
        environment=settings.environment,
        timestamp=_utc_timestamp(),
    )


@router.get("/env-check")
async def env_check(settings: Settings = Depends(get_settings)) -> JSONResponse:
    try:
        report = build_env_report(settings)
        return JSONResponse(content=report.model_dump(by_alias=True))
    except Exception as e:
        logger.exception("Environment check failed")
        return _error(500, "Environment check failed", details=str(e) or "Unknown error")


@router.get("/levels")
async def list_levels(make_client: SupabaseFactory = Depends(get_supabase_factory)) -> JSONResponse:
    try:
        try:
            result = await (
                make_client()
                .from_("levels")
                .select("*")
                .eq("is_active", True)
                .order("sort_order", ascending=True)
                .execute()
            )
        except Exception:
            logger.exception("Supabase client initialization error")
            return _error(500, "Database connection failed")

        if result.error:
            mapped = handle_supabase_error(result.error, "fetch levels")
            return _error(mapped.status, mapped.error)

        return JSONResponse(content=result.data or [])
    except Exception:
        logger.exception("Error fetching levels")
        return _error(500, "Failed to fetch levels")


_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_RADIX_RE = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_RADIX = {"x": 16, "o": 8, "b": 2}


def _parse_role_id(raw: str) -> int | float | None:
    """Numeric coercion with browser ``Number()`` rules; ``None`` when not a number.

    Blank strings are 0, ``Infinity`` is allowed with a sign, and unsigned
    ``0x``/``0o``/``0b`` literals are integers. Python-only spellings such as
    ``inf``, ``nan`` or ``1_000`` are rejected.
    """

    text = raw.strip()
    if not text:
        return 0
    if text in {"Infinity", "+Infinity", "-Infinity"}:
        return -math.inf if text.startswith("-") else math.inf
    radix = _RADIX_RE.fullmatch(text)
    if radix:
        return int(radix.group(1)[1:], _RADIX[radix.group(1)[0].lower()])
    if not _DECIMAL_RE.fullmatch(text):
        return None
    value = float(text)
    if math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def _filter_number(value: int | float) -> int | float | str:
    if math.isinf(value):
        return "-Infinity" if value < 0 else "Infinity"
    return value


def unique_levels(rate_cards: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Distinct embedded levels (first occurrence wins), ordered by id."""

    seen: set[Any] = set()
    out: list[dict[str, Any]] = []
    for card in rate_cards:
        level = card.get("levels")
        if not level:
            continue
        level_id = level.get("id")
        if level_id in seen:
            continue
        seen.add(level_id)
        out.append(level)
    out.sort(key=lambda lvl: lvl.get("id") or 0)
    return out


@router.get("/levels/by-role")
async def list_levels_by_role(
    role_id: str | None = Query(default=None),
    make_client: SupabaseFactory = Depends(get_supabase_factory),
) -> JSONResponse:
    try:
        if not role_id:
            return _error(400, "role_id is required")
        parsed = _parse_role_id(role_id)
        if parsed is None:
            return _error(400, "role_id must be a valid number")

        try:
            result = await (
                make_client()
                .from_("rate_cards")
                .select(
                    """
                    levels:level_id (
                        id,
                        name,
                        display_name
                    )
                    """
                )
                .eq("role_id", _filter_number(parsed))
                .eq("is_active", True)
                .not_("level_id", "is", None)
                .execute()
            )
        except Exception:
            logger.exception("Supabase client initialization error")
            return _error(500, "Database connection failed")

        if result.error:
            mapped = handle_supabase_error(result.error, "fetch levels by role")
            return _error(mapped.status, mapped.error)

        return JSONResponse(content=unique_levels(result.data or []))
    except Exception:
        logger.exception("Error fetching levels by role")
        return _error(500, "Failed to fetch levels by role")
