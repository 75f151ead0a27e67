"""
JWT token verification for the quotes write endpoints.

Tokens are signed with the shared SECRET_KEY (HS256 by default). Reads are
public; creating, updating and deleting quotes requires a valid token.
"""

import logging
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.core.observability import set_user_id

from .utils import get_user_sub

logger = logging.getLogger(__name__)

# Optional security scheme so a missing header maps to UnauthorizedError (401)
_optional_security = HTTPBearer(auto_error=False)

INVALID_OR_EXPIRED_TOKEN_MSG = "Invalid or expired token"


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify a bearer token and return its payload.

    Args:
        token: Encoded JWT taken from the Authorization header

    Returns:
        Decoded JWT payload

    Raises:
        UnauthorizedError: If the token is invalid, expired, or the
            service has no signing key configured
    """
    if not settings.secret_key:
        logger.error("Token verification attempted but SECRET_KEY is not configured")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    options = {"verify_aud": settings.auth_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.auth_audience,
            options=options,
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTClaimsError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    # Reject tokens without a subject; quotes are attributed to it in logs
    get_user_sub(payload)
    return payload


def _create_bypass_user() -> dict[str, Any]:
    """Stand-in payload for SECURITY_SKIP_JWT_VALIDATION (APP_ENV=local only)."""
    return {
        "sub": "local-dev-user",
        "aud": settings.auth_audience,
        "exp": 9999999999,  # Far future expiration
    }


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_optional_security),
) -> dict[str, Any]:
    """
    Payload of the verified bearer token, or the local bypass user.

    The subject is bound to the logging context for the rest of the request.
    A missing header and a bad token both raise UnauthorizedError (401).
    """
    if settings.skip_jwt_validation:
        logger.info("Token verification bypassed for local development")
        user = _create_bypass_user()
    elif credentials is None:
        logger.warning("Missing Authorization header")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    else:
        user = verify_token(credentials.credentials)

    set_user_id(get_user_sub(user))
    return user
