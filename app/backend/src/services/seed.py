"""Utilities for seeding development data."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.models import Contractor, UserProfile

DEFAULT_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEFAULT_USER_EMAIL = "demo.user@example.com"
DEFAULT_COMPANY_NAME = "Demo Software sp. z o.o."
DEFAULT_COMPANY_ADDRESS = "ul. Marszałkowska 1, 00-001 Warszawa"
DEFAULT_COMPANY_NIP = "5260250274"
DEFAULT_BANK_ACCOUNT = "PL61109010140000071219812874"
DEFAULT_CONTRACTOR_NAME = "Przykładowy Klient S.A."
DEFAULT_CONTRACTOR_NIP = "1234563218"


@dataclass
class SeedResult:
    """Information about the seeded profile and contractor."""

    profile: UserProfile
    contractor: Contractor
    profile_created: bool
    contractor_created: bool


def seed_development_profile(
    session: Session,
    *,
    user_id: uuid.UUID = DEFAULT_USER_ID,
    email: str = DEFAULT_USER_EMAIL,
) -> SeedResult:
    """Ensure a complete demo seller profile and one contractor exist.

    Existing records are completed rather than replaced, so the invoice
    counter of a profile that already issued invoices is preserved.
    """

    profile = session.get(UserProfile, user_id)
    profile_created = False
    if profile is None:
        profile = UserProfile(
            id=user_id,
            email=email,
            invoice_number_format=get_settings().default_invoice_number_format,
            invoice_number_counter=0,
        )
        session.add(profile)
        profile_created = True

    profile.company_name = profile.company_name or DEFAULT_COMPANY_NAME
    profile.address = profile.address or DEFAULT_COMPANY_ADDRESS
    profile.nip = profile.nip or DEFAULT_COMPANY_NIP
    profile.bank_account = profile.bank_account or DEFAULT_BANK_ACCOUNT
    session.flush()

    contractor = session.execute(
        select(Contractor).where(
            Contractor.user_id == user_id,
            Contractor.nip == DEFAULT_CONTRACTOR_NIP,
            Contractor.deleted_at.is_(None),
        )
    ).scalar_one_or_none()
    contractor_created = False
    if contractor is None:
        contractor = Contractor(
            user_id=user_id,
            name=DEFAULT_CONTRACTOR_NAME,
            address="ul. Floriańska 10, 31-019 Kraków",
            nip=DEFAULT_CONTRACTOR_NIP,
        )
        session.add(contractor)
        session.flush()
        contractor_created = True

    return SeedResult(
        profile=profile,
        contractor=contractor,
        profile_created=profile_created,
        contractor_created=contractor_created,
    )
