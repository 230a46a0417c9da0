"""User profile schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from .common import ApiModel
from .validators import contains_counter_placeholder, is_valid_iban, is_valid_nip, normalize_iban


class UserProfileRead(ApiModel):
    id: UUID
    email: str | None
    company_name: str | None
    address: str | None
    nip: str | None
    bank_account: str | None
    logo_url: str | None
    invoice_number_format: str | None
    invoice_number_counter: int
    is_profile_complete: bool
    created_at: datetime
    updated_at: datetime


class UserProfileUpdate(ApiModel):
    """Partial profile update. Absent fields keep their stored values."""

    company_name: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    nip: str | None = None
    bank_account: str | None = None
    invoice_number_format: str | None = Field(default=None, max_length=50)

    @field_validator("nip")
    @classmethod
    def validate_nip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not is_valid_nip(value):
            raise ValueError("Invalid NIP format or checksum")
        return value

    @field_validator("bank_account")
    @classmethod
    def validate_bank_account(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not is_valid_iban(value):
            raise ValueError("Invalid bank account format")
        return normalize_iban(value)

    @field_validator("invoice_number_format")
    @classmethod
    def validate_number_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not contains_counter_placeholder(value):
            raise ValueError("Invoice number format must contain {NNN} placeholder")
        return value


__all__ = ["UserProfileRead", "UserProfileUpdate"]
