from __future__ import annotations

import logging

from .types import ErrorResponse, SupabaseError

logger = logging.getLogger(__name__)

_KNOWN_CODES: dict[str, tuple[str, int]] = {
    "PGRST116": ("Resource not found", 404),
    "23505": ("Resource already exists", 409),
    "23503": ("Foreign key constraint violation", 400),
}


def handle_supabase_error(error: SupabaseError, operation: str) -> ErrorResponse:
    """Maps a PostgREST/Postgres error to the message and status returned to callers."""

    logger.error("Supabase error during %s: code=%s message=%s", operation, error.code, error.message)

    known = _KNOWN_CODES.get(error.code)
    if known:
        return ErrorResponse(error=known[0], status=known[1])
    return ErrorResponse(error=f"Failed to {operation}", status=500)
