"""
Bearer token verification for the quote write endpoints.

- jwt_verification.py: token decoding and the get_current_user dependency
- utils.py: helpers for reading claims from a decoded payload
"""

from .jwt_verification import INVALID_OR_EXPIRED_TOKEN_MSG, get_current_user, verify_token
from .utils import get_user_id, get_user_sub

__all__ = [
    "INVALID_OR_EXPIRED_TOKEN_MSG",
    "get_current_user",
    "get_user_id",
    "get_user_sub",
    "verify_token",
]
