"""Invoice model."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Invoice(Base):
    """Invoice aggregate root.

    Seller and buyer columns are point-in-time snapshots copied when the
    invoice is written; they are never re-synced with the profile or the
    contractor afterwards.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','unpaid','paid')", name="ck_invoices_status_valid"
        ),
        CheckConstraint(
            "payment_method IN ('transfer','cash','card')",
            name="ck_invoices_payment_method_valid",
        ),
        CheckConstraint("due_date >= issue_date", name="ck_invoices_due_after_issue"),
        Index(
            "uq_invoices_user_number_active",
            "user_id",
            "invoice_number",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contractor_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("contractors.id", ondelete="SET NULL"), nullable=True, index=True
    )
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="draft")
    payment_method: Mapped[str] = mapped_column(
        String(10), nullable=False, default="transfer"
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PLN")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    seller_company_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    seller_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    seller_nip: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    seller_bank_account: Mapped[str | None] = mapped_column(String(34), nullable=True)
    seller_logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    buyer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    buyer_nip: Mapped[str | None] = mapped_column(String(10), nullable=True)

    total_net: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    total_vat: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    total_gross: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    owner: Mapped["UserProfile"] = relationship("UserProfile", back_populates="invoices")
    contractor: Mapped[Optional["Contractor"]] = relationship("Contractor")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )


__all__ = ["Invoice"]
