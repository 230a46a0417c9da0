"""Field validators shared by the request schemas."""

from __future__ import annotations

import re

NIP_PATTERN = re.compile(r"^\d{10}$")
NIP_WEIGHTS = (6, 5, 7, 2, 3, 4, 5, 6, 7)
IBAN_PATTERN = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{10,30}$")
NRB_PATTERN = re.compile(r"^\d{26}$")
COUNTER_PLACEHOLDER_PATTERN = re.compile(r"\{N+\}")


def is_valid_nip(value: str) -> bool:
    """Return ``True`` if ``value`` is a 10-digit NIP with a valid checksum."""

    if not isinstance(value, str) or NIP_PATTERN.match(value) is None:
        return False

    digits = [int(char) for char in value]
    checksum = sum(weight * digit for weight, digit in zip(NIP_WEIGHTS, digits))
    remainder = checksum % 11
    if remainder == 10:
        return False
    return remainder == digits[9]


def normalize_iban(value: str) -> str:
    """Strip whitespace, upper-case and prefix bare Polish NRB numbers with ``PL``."""

    compact = re.sub(r"\s+", "", value or "").upper()
    if NRB_PATTERN.match(compact):
        return f"PL{compact}"
    return compact


def is_valid_iban(value: str) -> bool:
    """Validate an IBAN (or a 26-digit Polish account number) with mod-97."""

    candidate = normalize_iban(value)
    if IBAN_PATTERN.match(candidate) is None:
        return False

    rearranged = candidate[4:] + candidate[:4]
    numeric = "".join(str(int(char, 36)) for char in rearranged)
    return int(numeric) % 97 == 1


def contains_counter_placeholder(value: str) -> bool:
    """Return ``True`` if the numbering format has a ``{N...}`` placeholder."""

    return isinstance(value, str) and COUNTER_PLACEHOLDER_PATTERN.search(value) is not None


__all__ = [
    "COUNTER_PLACEHOLDER_PATTERN",
    "contains_counter_placeholder",
    "is_valid_iban",
    "is_valid_nip",
    "normalize_iban",
]
