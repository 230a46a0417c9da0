"""Decimal arithmetic for invoice item and invoice total amounts.

Every amount is rounded to two decimal places with ``ROUND_HALF_UP``.
Invoice totals sum the already rounded item net and VAT amounts and derive
gross as ``net + vat``, so the stored totals always equal the sum of the
amounts shown on the individual items.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Protocol

from app.backend.src.core.errors import (
    AmountOutOfRangeError,
    InvalidVatRateError,
    ValidationError,
)

CENT = Decimal("0.01")
# Largest value a Numeric(14, 2) column holds.
MAX_AMOUNT = Decimal("999999999999.99")

VAT_RATES: dict[str, Decimal] = {
    "23": Decimal("0.23"),
    "8": Decimal("0.08"),
    "5": Decimal("0.05"),
    "0": Decimal("0"),
    "zw": Decimal("0"),
}


class PricedItem(Protocol):
    """Anything carrying the three pricing fields: request items or ORM rows."""

    quantity: str | Decimal
    unit_price: str | Decimal
    vat_rate: str | Enum


@dataclass(frozen=True)
class ItemAmounts:
    net: Decimal
    vat: Decimal
    gross: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    total_net: Decimal
    total_vat: Decimal
    total_gross: Decimal


def quantize_money(value: Decimal) -> Decimal:
    """Round ``value`` to cents using half-up rounding."""

    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise AmountOutOfRangeError(value) from exc


def ensure_storable(value: Decimal) -> Decimal:
    """Reject amounts whose magnitude exceeds :data:`MAX_AMOUNT`."""

    if abs(value) > MAX_AMOUNT:
        raise AmountOutOfRangeError(value)
    return value


def format_money(value: Decimal) -> str:
    """Return ``value`` as a fixed-point string with exactly two decimals."""

    return f"{quantize_money(value):.2f}"


def to_decimal(value: str | int | Decimal) -> Decimal:
    """Convert a string or integer amount to :class:`Decimal` without floats."""

    if isinstance(value, float):
        raise ValidationError("Monetary values must not be floating point numbers")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid amount: {value}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value}")
    return result


def resolve_vat_rate(vat_rate: str | Enum) -> Decimal:
    """Return the multiplier for ``vat_rate``; unknown rates are rejected."""

    key = vat_rate.value if isinstance(vat_rate, Enum) else str(vat_rate)
    try:
        return VAT_RATES[key]
    except KeyError as exc:
        raise InvalidVatRateError(key) from exc


def calculate_item_amounts(
    quantity: str | int | Decimal,
    unit_price: str | int | Decimal,
    vat_rate: str | Enum,
) -> ItemAmounts:
    """Compute net, VAT and gross amounts for a single item."""

    rate = resolve_vat_rate(vat_rate)
    factor = ensure_storable(to_decimal(quantity))
    price = ensure_storable(to_decimal(unit_price))
    net = ensure_storable(quantize_money(factor * price))
    vat = quantize_money(net * rate)
    return ItemAmounts(net=net, vat=vat, gross=ensure_storable(net + vat))


def calculate_totals(items: Iterable[PricedItem]) -> InvoiceTotals:
    """Aggregate item amounts into invoice totals."""

    total_net = Decimal("0.00")
    total_vat = Decimal("0.00")
    for item in items:
        amounts = calculate_item_amounts(
            item.quantity, item.unit_price, item.vat_rate
        )
        total_net += amounts.net
        total_vat += amounts.vat

    return InvoiceTotals(
        total_net=ensure_storable(total_net),
        total_vat=ensure_storable(total_vat),
        total_gross=ensure_storable(total_net + total_vat),
    )


__all__ = [
    "CENT",
    "InvoiceTotals",
    "ItemAmounts",
    "MAX_AMOUNT",
    "PricedItem",
    "VAT_RATES",
    "calculate_item_amounts",
    "calculate_totals",
    "ensure_storable",
    "format_money",
    "quantize_money",
    "resolve_vat_rate",
    "to_decimal",
]
