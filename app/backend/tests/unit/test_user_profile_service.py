"""Unit tests for user profile management."""

from __future__ import annotations

import os
import sys
import uuid
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoicing.db")

import pytest

from app.backend.src.core.errors import ProfileNotFoundError
from app.backend.src.db import Base, get_engine, session_scope
from app.backend.src.schemas.user_profile import UserProfileUpdate
from app.backend.src.services import user_profiles

USER_ID = uuid.UUID("55555555-5555-5555-5555-555555555555")


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_get_or_create_bootstraps_empty_profile() -> None:
    with session_scope() as session:
        profile = user_profiles.get_or_create_profile(session, USER_ID, "owner@example.com")

    assert profile.id == USER_ID
    assert profile.email == "owner@example.com"
    assert profile.invoice_number_format == "FV/{YYYY}/{NNN}"
    assert profile.invoice_number_counter == 0
    assert profile.is_complete is False


def test_get_or_create_returns_existing_profile() -> None:
    with session_scope() as session:
        user_profiles.get_or_create_profile(session, USER_ID, "owner@example.com")
        user_profiles.increment_invoice_counter(session, USER_ID)

    with session_scope() as session:
        profile = user_profiles.get_or_create_profile(session, USER_ID)

    assert profile.invoice_number_counter == 1
    assert profile.email == "owner@example.com"


def test_get_profile_requires_existing_profile() -> None:
    with pytest.raises(ProfileNotFoundError):
        with session_scope() as session:
            user_profiles.get_profile(session, USER_ID)


def test_update_profile_makes_it_complete() -> None:
    with session_scope() as session:
        user_profiles.get_or_create_profile(session, USER_ID)
        profile = user_profiles.update_profile(
            session,
            USER_ID,
            UserProfileUpdate.model_validate(
                {
                    "companyName": "Acme sp. z o.o.",
                    "address": "ul. Prosta 1, 00-001 Warszawa",
                    "nip": "5260250274",
                    "bankAccount": "61 1090 1014 0000 0712 1981 2874",
                }
            ),
        )
        read = user_profiles.serialize_profile(profile)

    assert read.is_profile_complete is True
    assert read.bank_account == "PL61109010140000071219812874"
    assert read.invoice_number_format == "FV/{YYYY}/{NNN}"


def test_update_profile_leaves_absent_fields_untouched() -> None:
    with session_scope() as session:
        user_profiles.get_or_create_profile(session, USER_ID)
        user_profiles.update_profile(
            session, USER_ID, UserProfileUpdate(company_name="Acme", address="Street 1")
        )
        profile = user_profiles.update_profile(
            session, USER_ID, UserProfileUpdate(invoice_number_format="{YY}/{NNNN}")
        )

    assert profile.company_name == "Acme"
    assert profile.address == "Street 1"
    assert profile.invoice_number_format == "{YY}/{NNNN}"


def test_serialized_profile_uses_camel_case_keys() -> None:
    with session_scope() as session:
        profile = user_profiles.get_or_create_profile(session, USER_ID)
        payload = user_profiles.serialize_profile(profile).model_dump(by_alias=True)

    assert payload["isProfileComplete"] is False
    assert payload["invoiceNumberCounter"] == 0
