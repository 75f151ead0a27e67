"""
Annotated FastAPI dependencies shared by the route modules.

    AsyncDbSession  one AsyncSession per request
    CurrentUser     verified bearer token payload (writes only)
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_async_sessionmaker
from app.core.security import get_current_user as _get_current_user


async def get_async_db_session() -> AsyncGenerator[AsyncSession]:
    """Request-scoped session; routes commit explicitly after writes."""
    async with get_async_sessionmaker()() as session:
        yield session


AsyncDbSession = Annotated[AsyncSession, Depends(get_async_db_session)]


def get_current_user(user: dict[str, Any] = Depends(_get_current_user)) -> dict[str, Any]:
    # Separate override point for tests; verification lives in app.core.security
    return user


CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
