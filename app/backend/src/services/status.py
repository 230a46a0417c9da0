"""Invoice status transition rules."""

from __future__ import annotations

from app.backend.src.core.errors import IncompleteProfileError, InvalidStatusTransitionError
from app.backend.src.models import UserProfile
from app.backend.src.schemas.invoice import InvoiceStatus

# There is no terminal state: a paid invoice can be reopened as unpaid.
ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.UNPAID, InvoiceStatus.PAID}),
    InvoiceStatus.UNPAID: frozenset({InvoiceStatus.PAID, InvoiceStatus.DRAFT}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.UNPAID}),
}


def validate_status_transition(
    current: InvoiceStatus | str, requested: InvoiceStatus | str
) -> None:
    """Raise :class:`InvalidStatusTransitionError` unless ``current -> requested`` is allowed.

    Keeping the same status is always accepted.
    """

    current_status = InvoiceStatus(current)
    requested_status = InvoiceStatus(requested)
    if current_status == requested_status:
        return
    if requested_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(current_status.value, requested_status.value)


def requires_complete_profile(status: InvoiceStatus | str) -> bool:
    """Return ``True`` for statuses that can only be set by a complete seller profile."""

    return InvoiceStatus(status) != InvoiceStatus.DRAFT


def validate_profile_for_issuing(profile: UserProfile) -> None:
    """Ensure the seller's company name, address and NIP are filled in."""

    if not profile.is_complete:
        raise IncompleteProfileError()


__all__ = [
    "ALLOWED_TRANSITIONS",
    "requires_complete_profile",
    "validate_profile_for_issuing",
    "validate_status_transition",
]
