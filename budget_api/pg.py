"""Pooled raw-SQL access to Postgres.

``query`` is the single entry point for running a parameterized statement.
It takes the pool explicitly so callers (and tests) decide which pool backs
it. ``Database`` owns the process pool: created on first use, closed once at
shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import asyncpg

from .settings import Settings

logger = logging.getLogger(__name__)

QueryParam = str | int | float | None


async def query(pool: Any, sql: str, params: Sequence[QueryParam] | None = None) -> list[asyncpg.Record]:
    """Runs ``sql`` on one pooled connection and returns the driver's rows unmodified.

    Placeholders are positional (``$1``, ``$2``...). The connection goes back to
    the pool on every exit path; acquisition and execution errors propagate
    as raised by asyncpg, without retries.
    """

    async with pool.acquire() as conn:
        return await conn.fetch(sql, *(params or ()))


class Database:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: asyncpg.Pool | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool
        async with self._lock:
            if self._pool is None:
                kwargs = self._settings.pool_kwargs()
                self._pool = await asyncpg.create_pool(**kwargs)
                logger.info(
                    "Postgres pool ready (min=%s max=%s)", kwargs["min_size"], kwargs["max_size"]
                )
        return self._pool

    async def query(self, sql: str, params: Sequence[QueryParam] | None = None) -> list[asyncpg.Record]:
        return await query(await self.pool(), sql, params)

    async def close(self) -> None:
        async with self._lock:
            if self._pool is None:
                return
            pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Postgres pool closed")
