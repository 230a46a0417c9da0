"""Invoice schemas."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator

from .common import ApiModel, PaginationMeta, SortOrder
from .validators import is_valid_nip

AMOUNT_PATTERN = r"^\d{1,12}(\.\d{1,2})?$"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentMethod(str, Enum):
    TRANSFER = "transfer"
    CASH = "cash"
    CARD = "card"


class VatRate(str, Enum):
    VAT_23 = "23"
    VAT_8 = "8"
    VAT_5 = "5"
    VAT_0 = "0"
    VAT_ZW = "zw"


class InvoiceSortField(str, Enum):
    INVOICE_NUMBER = "invoiceNumber"
    ISSUE_DATE = "issueDate"
    DUE_DATE = "dueDate"
    TOTAL_GROSS = "totalGross"
    CREATED_AT = "createdAt"


def _check_buyer_nip(value: str | None) -> str | None:
    if value is None:
        return None
    if not is_valid_nip(value):
        raise ValueError("Invalid buyer NIP number")
    return value


def _check_unique_positions(items: list["InvoiceItemInput"] | None) -> list["InvoiceItemInput"] | None:
    if items is None:
        return None
    positions = [item.position for item in items]
    if len(positions) != len(set(positions)):
        raise ValueError("Item positions must be unique")
    return items


# --------------------------------------------------------------------------
# Requests
# --------------------------------------------------------------------------
class BuyerInput(ApiModel):
    """Buyer details entered manually or copied from a contractor."""

    name: str = Field(min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    nip: str | None = None

    @field_validator("nip")
    @classmethod
    def validate_nip(cls, value: str | None) -> str | None:
        return _check_buyer_nip(value)


class BuyerUpdate(ApiModel):
    """Partial buyer update; ``address`` and ``nip`` may be cleared with ``null``."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    nip: str | None = None

    @field_validator("nip")
    @classmethod
    def validate_nip(cls, value: str | None) -> str | None:
        return _check_buyer_nip(value)


class InvoiceItemInput(ApiModel):
    """Invoice line as submitted by the caller.

    Quantities and prices travel as strings so no binary floating point is
    involved before they reach the calculator.
    """

    position: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=255)
    unit: str | None = Field(default=None, max_length=20)
    quantity: str = Field(pattern=AMOUNT_PATTERN)
    unit_price: str = Field(pattern=AMOUNT_PATTERN)
    vat_rate: VatRate


class InvoiceCreate(ApiModel):
    invoice_number: str = Field(min_length=1, max_length=50)
    issue_date: date
    due_date: date
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_method: PaymentMethod = PaymentMethod.TRANSFER
    notes: str | None = Field(default=None, max_length=1000)
    contractor_id: UUID | None = None
    buyer: BuyerInput
    items: list[InvoiceItemInput] = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def validate_positions(
        cls, items: list[InvoiceItemInput] | None
    ) -> list[InvoiceItemInput] | None:
        return _check_unique_positions(items)


class InvoiceUpdate(ApiModel):
    """Partial invoice update.

    Only fields present in the payload are applied. ``items``, when present,
    replaces the whole item set.
    """

    invoice_number: str | None = Field(default=None, min_length=1, max_length=50)
    issue_date: date | None = None
    due_date: date | None = None
    status: InvoiceStatus | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(default=None, max_length=1000)
    contractor_id: UUID | None = None
    buyer: BuyerUpdate | None = None
    items: list[InvoiceItemInput] | None = Field(default=None, min_length=1)

    @field_validator("items")
    @classmethod
    def validate_positions(
        cls, items: list[InvoiceItemInput] | None
    ) -> list[InvoiceItemInput] | None:
        return _check_unique_positions(items)


class InvoiceStatusUpdate(ApiModel):
    status: InvoiceStatus


class InvoiceDuplicate(ApiModel):
    invoice_number: str | None = Field(default=None, min_length=1, max_length=50)


class InvoiceListQuery(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: InvoiceStatus | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    sort_by: InvoiceSortField = InvoiceSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


# --------------------------------------------------------------------------
# Responses
# --------------------------------------------------------------------------
class SellerInfo(ApiModel):
    company_name: str
    address: str
    nip: str
    bank_account: str | None
    logo_url: str | None


class BuyerInfo(ApiModel):
    name: str
    address: str | None
    nip: str | None


class InvoiceItemRead(ApiModel):
    id: UUID
    position: int
    name: str
    unit: str
    quantity: str
    unit_price: str
    vat_rate: VatRate
    net_amount: str
    vat_amount: str
    gross_amount: str


class InvoiceRead(ApiModel):
    id: UUID
    invoice_number: str
    issue_date: date
    due_date: date
    status: InvoiceStatus
    payment_method: PaymentMethod
    currency: str
    notes: str | None
    seller: SellerInfo
    buyer: BuyerInfo
    items: list[InvoiceItemRead] = []
    total_net: str
    total_vat: str
    total_gross: str
    contractor_id: UUID | None
    created_at: datetime
    updated_at: datetime


class InvoiceSummary(ApiModel):
    id: UUID
    invoice_number: str
    issue_date: date
    due_date: date
    status: InvoiceStatus
    buyer_name: str
    buyer_nip: str | None
    total_net: str
    total_vat: str
    total_gross: str
    currency: str
    created_at: datetime
    updated_at: datetime


class InvoiceList(ApiModel):
    data: list[InvoiceSummary]
    pagination: PaginationMeta


class NextInvoiceNumber(ApiModel):
    next_number: str
    format: str
    counter: int


class InvoiceStatusChange(ApiModel):
    id: UUID
    invoice_number: str
    status: InvoiceStatus
    updated_at: datetime


__all__ = [
    "BuyerInfo",
    "BuyerInput",
    "BuyerUpdate",
    "InvoiceCreate",
    "InvoiceDuplicate",
    "InvoiceItemInput",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoiceListQuery",
    "InvoiceRead",
    "InvoiceSortField",
    "InvoiceStatus",
    "InvoiceStatusChange",
    "InvoiceStatusUpdate",
    "InvoiceSummary",
    "InvoiceUpdate",
    "NextInvoiceNumber",
    "PaymentMethod",
    "SellerInfo",
    "VatRate",
]
