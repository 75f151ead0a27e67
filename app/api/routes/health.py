import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.db import get_async_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_reachable() -> bool:
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check could not reach the database")
        return False
    return True


@router.get("/health")
def health() -> dict:
    """Liveness: the process is up and serving requests."""
    return {"ok": True}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    """
    Readiness: the database answers a trivial query.

    200 with {"db": "ok"}, or 503 with {"db": "unavailable"}. Connection
    errors are logged, never returned.
    """
    if await _database_reachable():
        return JSONResponse(status_code=status.HTTP_200_OK, content={"ok": True, "db": "ok"})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ok": False, "db": "unavailable"},
    )
