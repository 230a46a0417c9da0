"""Invoice item model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceItem(Base):
    """A single priced line on an invoice.

    Net, VAT and gross amounts are not stored; they are derived from
    ``quantity``, ``unit_price`` and ``vat_rate`` whenever the item is read.
    """

    __tablename__ = "invoice_items"
    __table_args__ = (
        UniqueConstraint("invoice_id", "position", name="uq_invoice_items_position"),
        CheckConstraint("position >= 1", name="ck_invoice_items_position_positive"),
        CheckConstraint(
            "vat_rate IN ('23','8','5','0','zw')",
            name="ck_invoice_items_vat_rate_valid",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="szt.")
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    vat_rate: Mapped[str] = mapped_column(String(2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")


__all__ = ["InvoiceItem"]
