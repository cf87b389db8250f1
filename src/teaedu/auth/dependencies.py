"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teaedu.auth.jwt import AuthenticatedUser, verify_token

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> AuthenticatedUser | None:
    """Return the caller's identity, or None when the token is absent or invalid."""
    if credentials is None:
        return None
    try:
        user = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.info("access_token_rejected", reason=str(e))
        return None
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


async def get_current_user(
    user: AuthenticatedUser | None = Depends(get_current_user_optional),
) -> AuthenticatedUser:
    """Same as get_current_user_optional but raises 401 when unauthenticated."""
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
