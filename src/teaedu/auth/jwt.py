"""
Access token verification for the hosted auth provider.

The provider signs short-lived HS256 access tokens with a project secret.
This service only verifies them; ``create_access_token`` exists for local
tooling and tests that need a token the verifier accepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from teaedu.config import get_settings


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity carried by a verified access token."""

    id: str
    email: str | None = None


def create_access_token(user_id: str, email: str | None = None, expires_in_minutes: int = 60) -> str:
    """
    Create an access token shaped like the provider's.

    Args:
        user_id: Opaque user id (the ``sub`` claim).
        email: Optional email claim.
        expires_in_minutes: Lifetime of the token.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "aud": settings.auth_jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(minutes=expires_in_minutes),
    }
    return jwt.encode(payload, settings.auth_jwt_secret.get_secret_value(), algorithm=settings.auth_jwt_algorithm)


def verify_token(token: str) -> AuthenticatedUser:
    """
    Verify an access token and return the identity it carries.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.auth_jwt_secret.get_secret_value(),
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    subject = payload.get("sub")
    if not subject:
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return AuthenticatedUser(id=str(subject), email=payload.get("email"))
