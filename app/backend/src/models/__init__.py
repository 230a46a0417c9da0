"""ORM models exposed for easy imports."""

from .contractor import Contractor
from .invoice import Invoice
from .invoice_item import InvoiceItem
from .user_profile import UserProfile

__all__ = [
    "Contractor",
    "Invoice",
    "InvoiceItem",
    "UserProfile",
]
