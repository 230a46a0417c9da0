"""Bearer token verification for Supabase issued access tokens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

ALGORITHMS = ["HS256"]
_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as asserted by the identity provider."""

    user_id: UUID
    email: str | None = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str, *, secret: str, audience: str) -> dict[str, Any]:
    """Decode and validate an access token signed with the project secret."""

    try:
        return jwt.decode(token, secret, algorithms=ALGORITHMS, audience=audience)
    except JWTError as exc:
        LOGGER.info("token_rejected", error=str(exc))
        raise _unauthorized("Invalid token") from exc


def identity_from_claims(payload: dict[str, Any]) -> Identity:
    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Token missing subject")
    try:
        user_id = UUID(str(subject))
    except ValueError as exc:
        raise _unauthorized("Token subject is not a valid user id") from exc
    return Identity(user_id=user_id, email=payload.get("email"))


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
) -> Identity:
    """Resolve the authenticated caller from the bearer token."""

    if credentials is None:
        raise _unauthorized("Authorization header missing")

    settings = get_settings()
    if not settings.supabase_jwt_secret:
        LOGGER.error("jwt_secret_missing")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured",
        )

    payload = decode_token(
        credentials.credentials,
        secret=settings.supabase_jwt_secret,
        audience=settings.jwt_audience,
    )
    return identity_from_claims(payload)


__all__ = ["Identity", "decode_token", "get_current_identity", "identity_from_claims"]
