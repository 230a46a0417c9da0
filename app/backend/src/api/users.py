"""Endpoints for the authenticated user's seller profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.backend.src.core.security import Identity, get_current_identity
from app.backend.src.schemas.user_profile import UserProfileRead, UserProfileUpdate
from app.backend.src.services.user_profiles import (
    get_or_create_profile,
    serialize_profile,
    update_profile,
)
from ..db import get_session_dependency

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfileRead)
def read_current_profile(
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> UserProfileRead:
    """Return the caller's profile, creating an empty one on first login."""

    profile = get_or_create_profile(session, identity.user_id, identity.email)
    return serialize_profile(profile)


@router.put("/me", response_model=UserProfileRead)
def update_current_profile(
    payload: UserProfileUpdate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> UserProfileRead:
    get_or_create_profile(session, identity.user_id, identity.email)
    profile = update_profile(session, identity.user_id, payload)
    return serialize_profile(profile)
