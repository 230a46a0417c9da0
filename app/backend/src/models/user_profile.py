"""User profile model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProfile(Base):
    """Seller details and invoice numbering configuration for one user.

    The primary key is the user id issued by the identity provider, so a
    profile exists at most once per user.
    """

    __tablename__ = "user_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    nip: Mapped[str | None] = mapped_column(String(10), nullable=True)
    bank_account: Mapped[str | None] = mapped_column(String(34), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    invoice_number_format: Mapped[str | None] = mapped_column(
        String(50), nullable=True, default="FV/{YYYY}/{NNN}"
    )
    invoice_number_counter: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice", back_populates="owner", passive_deletes=True
    )
    contractors: Mapped[list["Contractor"]] = relationship(
        "Contractor", back_populates="owner", passive_deletes=True
    )

    @property
    def is_complete(self) -> bool:
        """Return ``True`` when the seller data required to issue invoices is set."""

        required_fields = [self.company_name, self.address, self.nip]
        return all(
            isinstance(value, str) and value.strip() for value in required_fields
        )


__all__ = ["UserProfile"]
