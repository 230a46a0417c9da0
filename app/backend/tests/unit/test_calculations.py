"""Unit tests for item and invoice amount calculations."""

from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from app.backend.src.core.errors import (
    AmountOutOfRangeError,
    InvalidVatRateError,
    ValidationError,
)
from app.backend.src.schemas.invoice import VatRate
from app.backend.src.services.calculations import (
    MAX_AMOUNT,
    calculate_item_amounts,
    calculate_totals,
    format_money,
    to_decimal,
)


def _item(quantity: str, unit_price: str, vat_rate: str) -> SimpleNamespace:
    return SimpleNamespace(quantity=quantity, unit_price=unit_price, vat_rate=vat_rate)


def test_item_amounts_for_standard_rate() -> None:
    amounts = calculate_item_amounts("2", "100.00", "23")

    assert amounts.net == Decimal("200.00")
    assert amounts.vat == Decimal("46.00")
    assert amounts.gross == Decimal("246.00")


@pytest.mark.parametrize(
    ("quantity", "unit_price", "vat_rate", "net", "vat"),
    [
        ("3", "0.35", "23", "1.05", "0.24"),
        ("0.5", "0.05", "0", "0.03", "0.00"),
        ("1", "0.50", "5", "0.50", "0.03"),
        ("1", "0.10", "23", "0.10", "0.02"),
        ("12.5", "19.99", "8", "249.88", "19.99"),
        ("4", "25.00", "zw", "100.00", "0.00"),
    ],
)
def test_item_amounts_round_half_up_to_cents(
    quantity: str, unit_price: str, vat_rate: str, net: str, vat: str
) -> None:
    amounts = calculate_item_amounts(quantity, unit_price, vat_rate)

    assert amounts.net == Decimal(net)
    assert amounts.vat == Decimal(vat)


@pytest.mark.parametrize("vat_rate", list(VatRate))
def test_gross_is_net_plus_vat_for_every_rate(vat_rate: VatRate) -> None:
    amounts = calculate_item_amounts("7", "13.37", vat_rate)

    assert amounts.gross == amounts.net + amounts.vat
    assert amounts.net.as_tuple().exponent == -2
    assert amounts.vat.as_tuple().exponent == -2


def test_exempt_and_zero_rates_carry_no_vat() -> None:
    assert calculate_item_amounts("1", "99.99", "0").vat == Decimal("0.00")
    assert calculate_item_amounts("1", "99.99", VatRate.VAT_ZW).vat == Decimal("0.00")


def test_totals_sum_rounded_item_amounts() -> None:
    items = [_item("1", "0.10", "23") for _ in range(3)]

    totals = calculate_totals(items)

    # VAT of the summed net would round to 0.07; per-item VAT rounds to 0.02 each.
    assert totals.total_net == Decimal("0.30")
    assert totals.total_vat == Decimal("0.06")
    assert totals.total_gross == Decimal("0.36")


def test_totals_equal_sum_of_item_amounts() -> None:
    items = [
        _item("2", "100.00", "23"),
        _item("1", "50.00", "5"),
        _item("3", "0.35", "8"),
        _item("1.5", "10.01", "zw"),
    ]

    totals = calculate_totals(items)
    amounts = [calculate_item_amounts(i.quantity, i.unit_price, i.vat_rate) for i in items]

    assert totals.total_net == sum((a.net for a in amounts), Decimal("0"))
    assert totals.total_vat == sum((a.vat for a in amounts), Decimal("0"))
    assert totals.total_gross == sum((a.gross for a in amounts), Decimal("0"))
    assert totals.total_gross == totals.total_net + totals.total_vat


def test_totals_of_no_items_are_zero() -> None:
    totals = calculate_totals([])

    assert format_money(totals.total_gross) == "0.00"


def test_unknown_vat_rate_is_rejected() -> None:
    with pytest.raises(InvalidVatRateError) as exc_info:
        calculate_item_amounts("1", "10.00", "7")

    assert exc_info.value.code == "INVALID_VAT_RATE"


@pytest.mark.parametrize("value", [1.5, "abc", "NaN", "Infinity"])
def test_non_exact_amounts_are_rejected(value: object) -> None:
    with pytest.raises(ValidationError):
        to_decimal(value)  # type: ignore[arg-type]


def test_format_money_always_has_two_decimals() -> None:
    assert format_money(Decimal("5")) == "5.00"
    assert format_money(Decimal("0.125")) == "0.13"


def test_oversized_inputs_raise_validation_error() -> None:
    with pytest.raises(ValidationError) as exc_info:
        calculate_item_amounts("1" + "0" * 26, "100", "23")

    assert exc_info.value.code == "AMOUNT_OUT_OF_RANGE"


def test_item_net_beyond_storage_range_is_rejected() -> None:
    with pytest.raises(AmountOutOfRangeError):
        calculate_item_amounts("999999999999.99", "1.01", "0")


def test_item_gross_beyond_storage_range_is_rejected() -> None:
    # Net fits, but adding 23% VAT does not.
    with pytest.raises(AmountOutOfRangeError):
        calculate_item_amounts("900000000000", "1", "23")


def test_totals_beyond_storage_range_are_rejected() -> None:
    items = [_item("600000000000", "1", "zw"), _item("600000000000", "1", "zw")]

    with pytest.raises(AmountOutOfRangeError):
        calculate_totals(items)


def test_largest_storable_amount_keeps_totals_consistent() -> None:
    items = [_item("1", str(MAX_AMOUNT), "zw")]

    totals = calculate_totals(items)
    amounts = calculate_item_amounts("1", MAX_AMOUNT, "zw")

    assert totals.total_net == amounts.net == MAX_AMOUNT
    assert totals.total_gross == MAX_AMOUNT
