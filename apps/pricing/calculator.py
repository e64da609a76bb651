"""
Price Calculator

Pure functions, no I/O. Maps selected units, rental duration, commission tier
and add-on services to a ``PriceBreakdown``.

Order of operations:
1. subtotal over selected units (add-ons are not discounted)
2. duration discount from the pricing table
3. add-on fees
4. monthly total, total for the duration, informational commission

Amounts are accumulated as unrounded ``Decimal`` values; ``rounded()`` and
``as_dict()`` quantize to cents for presentation.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping, Tuple
from uuid import UUID

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import quantize_money

from .tables import DEFAULT_PRICING, AddOnService, PricingTable


@dataclass(frozen=True)
class UnitSelection:
    """One requested line: ``count`` units of a type at a monthly base price."""

    unit_type: str
    monthly_base_price: Decimal
    count: int = 1
    unit_id: UUID | None = None


@dataclass(frozen=True)
class UnitCost:
    unit_type: str
    unit_id: UUID | None
    monthly_base_price: Decimal
    count: int
    monthly_cost: Decimal


@dataclass(frozen=True)
class AddOnCost:
    add_on: AddOnService
    monthly_fee: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    unit_costs: Tuple[UnitCost, ...]
    add_on_costs: Tuple[AddOnCost, ...]
    subtotal: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    add_on_total: Decimal
    monthly_total: Decimal
    duration_months: int
    total_for_duration: Decimal
    commission_rate: Decimal
    commission_monthly: Decimal
    commission_total: Decimal

    _MONEY_FIELDS = (
        "subtotal",
        "discount_amount",
        "add_on_total",
        "monthly_total",
        "total_for_duration",
        "commission_monthly",
        "commission_total",
    )

    def rounded(self) -> "PriceBreakdown":
        """Copy with every monetary amount quantized to cents."""
        return replace(
            self,
            unit_costs=tuple(
                replace(
                    cost,
                    monthly_base_price=quantize_money(cost.monthly_base_price),
                    monthly_cost=quantize_money(cost.monthly_cost),
                )
                for cost in self.unit_costs
            ),
            add_on_costs=tuple(
                replace(cost, monthly_fee=quantize_money(cost.monthly_fee))
                for cost in self.add_on_costs
            ),
            **{name: quantize_money(getattr(self, name)) for name in self._MONEY_FIELDS},
        )

    def as_dict(self) -> dict:
        """JSON-friendly snapshot, rounded for presentation."""
        rounded = self.rounded()
        data = {}
        for item in fields(rounded):
            value = getattr(rounded, item.name)
            if item.name == "unit_costs":
                data[item.name] = [
                    {
                        "unit_type": cost.unit_type,
                        "unit_id": str(cost.unit_id) if cost.unit_id else None,
                        "monthly_base_price": str(cost.monthly_base_price),
                        "count": cost.count,
                        "monthly_cost": str(cost.monthly_cost),
                    }
                    for cost in value
                ]
            elif item.name == "add_on_costs":
                data[item.name] = [
                    {"add_on": cost.add_on.value, "monthly_fee": str(cost.monthly_fee)}
                    for cost in value
                ]
            elif isinstance(value, Decimal):
                data[item.name] = str(value)
            else:
                data[item.name] = value
        return data


def to_decimal(value, field_name: str = "value") -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a number") from None
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return result


def normalize_add_ons(add_ons) -> Tuple[AddOnService, ...]:
    """
    Accepts an iterable of add-on names/enums or a mapping of flags
    (``{"storage": True, "shipping": False}``); returns the selected add-ons
    in declaration order without duplicates.
    """
    if not add_ons:
        return ()
    if isinstance(add_ons, Mapping):
        requested = [name for name, selected in add_ons.items() if selected]
    else:
        requested = list(add_ons)

    selected = set()
    for name in requested:
        try:
            selected.add(AddOnService(name))
        except ValueError:
            raise ValidationError(f"Unknown add-on service: {name}") from None
    return tuple(add_on for add_on in AddOnService if add_on in selected)


def validate_commission_rate(commission_rate, table: PricingTable = DEFAULT_PRICING) -> Decimal:
    rate = to_decimal(commission_rate, "commission_rate")
    if rate not in {Decimal(allowed) for allowed in table.commission_rates}:
        allowed = ", ".join(str(value) for value in table.commission_rates)
        raise ValidationError(f"Commission rate must be one of: {allowed}")
    return rate


def calculate_price(
    selections: Iterable[UnitSelection],
    duration_months: int,
    commission_rate,
    add_ons=(),
    table: PricingTable = DEFAULT_PRICING,
) -> PriceBreakdown:
    """
    Compute the binding price for a selection of units.

    Raises ValidationError for an empty selection, a duration outside the
    table's range, an unknown commission tier, a count below one, a
    negative base price or add-ons booked below the premium commission rate.
    """
    selections = list(selections)
    errors = []
    if not selections:
        errors.append("At least one unit selection is required")
    if not table.is_valid_duration(duration_months):
        errors.append(
            f"Duration must be between {table.min_duration_months} "
            f"and {table.max_duration_months} months"
        )

    unit_costs = []
    for selection in selections:
        price = to_decimal(selection.monthly_base_price, "monthly_base_price")
        if price < 0:
            errors.append(f"Base price for {selection.unit_type} cannot be negative")
        if not isinstance(selection.count, int) or selection.count < 1:
            errors.append(f"Count for {selection.unit_type} must be at least 1")
            continue
        unit_costs.append(
            UnitCost(
                unit_type=selection.unit_type,
                unit_id=selection.unit_id,
                monthly_base_price=price,
                count=selection.count,
                monthly_cost=price * selection.count,
            )
        )

    if errors:
        raise ValidationError(errors[0], errors)

    rate = validate_commission_rate(commission_rate, table)
    selected_add_ons = normalize_add_ons(add_ons)
    if selected_add_ons and not table.add_ons_allowed(rate):
        raise ValidationError(
            f"Add-on services require the {table.premium_commission_rate}% commission rate"
        )

    subtotal = sum((cost.monthly_cost for cost in unit_costs), Decimal("0"))
    discount_rate = table.discount_rate_for(duration_months)
    discount_amount = subtotal * discount_rate

    add_on_costs = tuple(
        AddOnCost(add_on=add_on, monthly_fee=table.add_on_fee(add_on))
        for add_on in selected_add_ons
    )
    add_on_total = sum((cost.monthly_fee for cost in add_on_costs), Decimal("0"))

    monthly_total = subtotal - discount_amount + add_on_total
    commission_monthly = monthly_total * rate / Decimal(100)

    return PriceBreakdown(
        unit_costs=tuple(unit_costs),
        add_on_costs=add_on_costs,
        subtotal=subtotal,
        discount_rate=discount_rate,
        discount_amount=discount_amount,
        add_on_total=add_on_total,
        monthly_total=monthly_total,
        duration_months=duration_months,
        total_for_duration=monthly_total * duration_months,
        commission_rate=rate,
        commission_monthly=commission_monthly,
        commission_total=commission_monthly * duration_months,
    )


def validate_price_overrides(
    overrides: Mapping | None,
    unit_ids: Iterable,
    table: PricingTable = DEFAULT_PRICING,
) -> dict:
    """
    Check admin per-unit price overrides.

    Every key must be one of ``unit_ids`` and every value a number in
    ``(0, table.max_price_override]``. Returns the overrides keyed by
    ``str(unit_id)`` as cent-quantized Decimals.
    """
    if not overrides:
        return {}
    if not isinstance(overrides, Mapping):
        raise ValidationError("Price overrides must be a mapping of unit id to price")

    allowed = {str(unit_id) for unit_id in unit_ids}
    errors = []
    cleaned = {}
    for unit_id, raw_price in overrides.items():
        key = str(unit_id)
        if key not in allowed:
            errors.append(f"Price override for unit {key} which is not part of this booking")
            continue
        try:
            price = to_decimal(raw_price, f"price override for unit {key}")
        except ValidationError as exc:
            errors.append(str(exc))
            continue
        if price <= 0:
            errors.append(f"Price override for unit {key} must be greater than 0")
        elif price > table.max_price_override:
            errors.append(
                f"Price override for unit {key} cannot exceed {table.max_price_override}"
            )
        else:
            cleaned[key] = quantize_money(price)

    if errors:
        raise ValidationError(errors[0], errors)
    return cleaned
