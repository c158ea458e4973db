"""FastAPI dependencies for authentication.

Login and token issuance belong to the external identity provider. This
service only verifies HS256 bearer tokens and takes the ``sub`` claim as the
user's UUID.
"""

from __future__ import annotations

import uuid
from typing import Any

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from jwt import DecodeError, InvalidTokenError

from perftrack.config import Settings, get_settings
from perftrack.telemetry.logging import bind_user_context

log = structlog.get_logger(__name__)


class TokenValidationError(Exception):
    """Raised when a JWT cannot be validated."""


class AuthenticatedUser:
    """Lightweight container passed to route handlers."""

    def __init__(self, user_id: uuid.UUID, claims: dict[str, Any]) -> None:
        self.id = user_id
        self.claims = claims

    @property
    def timezone(self) -> str | None:
        """Reference timezone from the ``tz`` claim, when the IdP supplies one."""
        return self.claims.get("tz")


def validate_token(token: str, settings: Settings) -> dict[str, Any]:
    """Validate a JWT and return its claims.

    Raises TokenValidationError if the token is invalid, expired, has the
    wrong audience, or its subject is not a UUID.
    """
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"verify_exp": True, "verify_aud": True},
        )
    except (DecodeError, InvalidTokenError) as exc:
        raise TokenValidationError(f"Token validation failed: {exc}") from exc

    subject = claims.get("sub")
    if not subject:
        raise TokenValidationError("Missing required JWT claim: sub")
    try:
        uuid.UUID(subject)
    except ValueError as exc:
        raise TokenValidationError("JWT subject is not a UUID") from exc
    return claims


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AuthenticatedUser:
    """Resolve the bearer token into an AuthenticatedUser. Raises 401."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.removeprefix("Bearer ").strip()
    try:
        claims = validate_token(token, settings)
    except TokenValidationError as exc:
        log.warning("auth.token_rejected", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    user_id = uuid.UUID(claims["sub"])
    bind_user_context(user_id)
    return AuthenticatedUser(user_id=user_id, claims=claims)
