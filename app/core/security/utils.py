"""Claim helpers for decoded token payloads."""

import logging
from typing import Any

from app.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def get_user_sub(payload: dict[str, Any]) -> str:
    """The `sub` claim as a string; UnauthorizedError when it is absent or empty."""
    sub = payload.get("sub")
    if not sub:
        logger.error("Token payload has no 'sub' claim")
        raise UnauthorizedError("Invalid token - missing user identifier")
    return str(sub)


def get_user_id(user: dict[str, Any]) -> str:
    """Like get_user_sub, but an empty string instead of an error."""
    return str(user.get("sub") or "")
