from __future__ import annotations

import logging

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from .api import router as api_router
from .deps import get_database
from .logging_config import setup_logging
from .pg import Database
from .settings import get_settings
from .supabase import close_http

setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Calculator API")
app.include_router(api_router)


@app.on_event("startup")
async def _startup() -> None:
    # The pool itself is created on first query so the API can start without Postgres.
    app.state.db = Database(get_settings())


@app.on_event("shutdown")
async def _shutdown() -> None:
    db: Database | None = getattr(app.state, "db", None)
    if db is not None:
        await db.close()
    await close_http()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/db")
async def health_db(db: Database = Depends(get_database)) -> JSONResponse:
    try:
        await db.query("SELECT 1")
    except Exception:
        logger.exception("Database health check failed")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "Database unreachable"})
    return JSONResponse(content={"status": "ok"})
