"""Tests for the price calculator."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from apps.pricing import (
    AddOnService,
    PricingTable,
    UnitSelection,
    calculate_price,
    validate_price_overrides,
)
from shared.domain.exceptions import ValidationError


def _two_units():
    return [
        UnitSelection(unit_type="standard_shelf", monthly_base_price=Decimal("50")),
        UnitSelection(unit_type="cooled_shelf", monthly_base_price=Decimal("70")),
    ]


def test_six_month_booking_matches_reference_numbers():
    breakdown = calculate_price(_two_units(), duration_months=6, commission_rate=7)

    assert breakdown.subtotal == Decimal("120")
    assert breakdown.discount_rate == Decimal("0.05")
    assert breakdown.discount_amount == Decimal("6")
    assert breakdown.monthly_total == Decimal("114")
    assert breakdown.total_for_duration == Decimal("684")
    assert breakdown.commission_monthly == Decimal("7.98")


def test_calculation_is_deterministic():
    first = calculate_price(_two_units(), 6, 7, add_ons=["storage"])
    second = calculate_price(_two_units(), 6, 7, add_ons=["storage"])

    assert first == second


def test_crossing_six_month_threshold_lowers_monthly_total():
    five = calculate_price(_two_units(), 5, 4)
    six = calculate_price(_two_units(), 6, 4)

    assert five.discount_rate == Decimal("0")
    assert six.monthly_total < five.monthly_total


def test_twelve_months_unlocks_larger_discount():
    breakdown = calculate_price(_two_units(), 12, 4)

    assert breakdown.discount_rate == Decimal("0.10")
    assert breakdown.monthly_total == Decimal("108")


def test_add_ons_are_excluded_from_discount_base():
    breakdown = calculate_price(
        _two_units(), 6, 7, add_ons={"storage": True, "shipping": True}
    )

    assert breakdown.discount_amount == Decimal("6")
    assert breakdown.add_on_total == Decimal("25")
    assert breakdown.monthly_total == Decimal("139")
    assert [cost.add_on for cost in breakdown.add_on_costs] == [
        AddOnService.STORAGE,
        AddOnService.SHIPPING,
    ]


def test_count_multiplies_base_price():
    breakdown = calculate_price(
        [UnitSelection("sales_table", Decimal("35.50"), count=3)], 1, 4
    )

    assert breakdown.subtotal == Decimal("106.50")


def test_rounding_happens_only_for_presentation():
    breakdown = calculate_price(
        [UnitSelection("standard_shelf", Decimal("33.33"))], 6, 7
    )

    assert breakdown.discount_amount == Decimal("1.6665")
    assert breakdown.rounded().discount_amount == Decimal("1.67")
    assert breakdown.as_dict()["discount_amount"] == "1.67"


@pytest.mark.parametrize(
    "selections, duration, commission",
    [
        ([], 6, 7),
        (_two_units(), 0, 7),
        (_two_units(), 25, 7),
        (_two_units(), 6, 5),
        ([UnitSelection("standard_shelf", Decimal("-1"))], 6, 7),
        ([UnitSelection("standard_shelf", Decimal("10"), count=0)], 6, 7),
    ],
)
def test_invalid_input_is_rejected(selections, duration, commission):
    with pytest.raises(ValidationError):
        calculate_price(selections, duration, commission)


def test_unknown_add_on_is_rejected():
    with pytest.raises(ValidationError):
        calculate_price(_two_units(), 6, 7, add_ons=["gift_wrapping"])


def test_add_ons_require_premium_commission():
    with pytest.raises(ValidationError, match="7% commission rate"):
        calculate_price(_two_units(), 6, 4, add_ons=["storage"])


def test_empty_add_ons_are_fine_below_premium_commission():
    breakdown = calculate_price(_two_units(), 6, 4, add_ons=[])

    assert breakdown.add_on_total == Decimal("0")


def test_custom_table_changes_discount_steps():
    table = PricingTable(discount_steps=((3, Decimal("0.20")),))

    breakdown = calculate_price(_two_units(), 3, 4, table=table)

    assert breakdown.discount_amount == Decimal("24")


def test_table_rejects_non_monotonic_steps():
    with pytest.raises(ValueError):
        PricingTable(discount_steps=((12, Decimal("0.05")), (6, Decimal("0.10"))))


def test_price_overrides_within_bounds_are_accepted():
    unit_id = uuid4()

    cleaned = validate_price_overrides({unit_id: "1000"}, [unit_id])

    assert cleaned == {str(unit_id): Decimal("1000.00")}


@pytest.mark.parametrize("price", [0, -5, "1000.01", "abc", True])
def test_price_overrides_out_of_bounds_are_rejected(price):
    unit_id = uuid4()

    with pytest.raises(ValidationError):
        validate_price_overrides({unit_id: price}, [unit_id])


def test_price_override_for_foreign_unit_is_rejected():
    with pytest.raises(ValidationError):
        validate_price_overrides({uuid4(): 10}, [uuid4()])
