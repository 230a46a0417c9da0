"""Service layer functions for user profiles and invoice numbering state."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import ProfileNotFoundError
from app.backend.src.models import UserProfile
from app.backend.src.schemas.user_profile import UserProfileRead, UserProfileUpdate

LOGGER = structlog.get_logger(__name__)

UPDATABLE_FIELDS = (
    "company_name",
    "address",
    "nip",
    "bank_account",
    "invoice_number_format",
)


def get_profile(session: Session, user_id: UUID) -> UserProfile:
    """Return the profile for ``user_id`` or raise :class:`ProfileNotFoundError`."""

    profile = session.get(UserProfile, user_id)
    if profile is None:
        LOGGER.warning("profile_not_found", user_id=str(user_id))
        raise ProfileNotFoundError()
    return profile


def get_or_create_profile(
    session: Session, user_id: UUID, email: str | None = None
) -> UserProfile:
    """Return the user's profile, creating an empty one on first access."""

    profile = session.get(UserProfile, user_id)
    if profile is not None:
        if email and profile.email != email:
            profile.email = email
            session.commit()
        return profile

    profile = UserProfile(
        id=user_id,
        email=email,
        invoice_number_format=get_settings().default_invoice_number_format,
        invoice_number_counter=0,
    )
    session.add(profile)
    session.commit()
    LOGGER.info("profile_created", user_id=str(user_id))
    return profile


def update_profile(
    session: Session, user_id: UUID, payload: UserProfileUpdate
) -> UserProfile:
    """Apply the fields present in ``payload`` to the user's profile."""

    profile = get_profile(session, user_id)
    for field_name in UPDATABLE_FIELDS:
        if field_name in payload.model_fields_set:
            setattr(profile, field_name, getattr(payload, field_name))

    session.add(profile)
    session.commit()
    session.refresh(profile)
    LOGGER.info(
        "profile_updated",
        user_id=str(user_id),
        fields=sorted(payload.model_fields_set),
    )
    return profile


def increment_invoice_counter(session: Session, user_id: UUID) -> None:
    """Atomically bump the user's invoice number counter by one.

    The increment is evaluated by the database, so concurrent requests never
    read-modify-write the same stale value. The caller owns the transaction.
    """

    session.execute(
        update(UserProfile)
        .where(UserProfile.id == user_id)
        .values(invoice_number_counter=UserProfile.invoice_number_counter + 1)
        .execution_options(synchronize_session="fetch")
    )


def serialize_profile(profile: UserProfile) -> UserProfileRead:
    return UserProfileRead(
        id=profile.id,
        email=profile.email,
        company_name=profile.company_name,
        address=profile.address,
        nip=profile.nip,
        bank_account=profile.bank_account,
        logo_url=profile.logo_url,
        invoice_number_format=profile.invoice_number_format,
        invoice_number_counter=profile.invoice_number_counter or 0,
        is_profile_complete=profile.is_complete,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


__all__ = [
    "get_or_create_profile",
    "get_profile",
    "increment_invoice_counter",
    "serialize_profile",
    "update_profile",
]
