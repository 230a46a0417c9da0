"""Contractor schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator

from .common import ApiModel, PaginationMeta, SortOrder
from .validators import is_valid_nip


class ContractorSortField(str, Enum):
    NAME = "name"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


def _check_nip(value: str | None) -> str | None:
    if value is None:
        return None
    if not is_valid_nip(value):
        raise ValueError("Invalid NIP format or checksum")
    return value


class ContractorCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    nip: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Contractor name is required")
        return stripped

    @field_validator("nip")
    @classmethod
    def validate_nip(cls, value: str | None) -> str | None:
        return _check_nip(value)


class ContractorUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    nip: str | None = None

    @field_validator("nip")
    @classmethod
    def validate_nip(cls, value: str | None) -> str | None:
        return _check_nip(value)


class ContractorListQuery(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    search: str | None = None
    sort_by: ContractorSortField = ContractorSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class ContractorRead(ApiModel):
    id: UUID
    name: str
    address: str | None
    nip: str | None
    created_at: datetime
    updated_at: datetime


class ContractorList(ApiModel):
    data: list[ContractorRead]
    pagination: PaginationMeta


__all__ = [
    "ContractorCreate",
    "ContractorList",
    "ContractorListQuery",
    "ContractorRead",
    "ContractorSortField",
    "ContractorUpdate",
]
