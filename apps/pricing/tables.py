"""Single source of pricing constants.

Discount steps, add-on fees, commission tiers, the allowed rental duration
and the admin price-override ceiling all live in one ``PricingTable`` so the
booking request path, the confirmation path and admin overrides agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Tuple


class AddOnService(str, Enum):
    """Optional fixed-fee services billed alongside the rental fee."""

    STORAGE = "storage"
    SHIPPING = "shipping"


@dataclass(frozen=True)
class PricingTable:
    # (minimum months, discount fraction), highest threshold first
    discount_steps: Tuple[Tuple[int, Decimal], ...] = (
        (12, Decimal("0.10")),
        (6, Decimal("0.05")),
    )
    add_on_fees: Dict[AddOnService, Decimal] = field(
        default_factory=lambda: {
            AddOnService.STORAGE: Decimal("20.00"),
            AddOnService.SHIPPING: Decimal("5.00"),
        }
    )
    commission_rates: Tuple[int, ...] = (4, 7)
    premium_commission_rate: int = 7
    min_duration_months: int = 1
    max_duration_months: int = 24
    max_price_override: Decimal = Decimal("1000")

    def __post_init__(self):
        thresholds = [months for months, _ in self.discount_steps]
        rates = [rate for _, rate in self.discount_steps]
        if thresholds != sorted(thresholds, reverse=True):
            raise ValueError("Discount steps must be ordered by descending threshold")
        if rates != sorted(rates, reverse=True):
            raise ValueError("Discount rates must not grow as the threshold shrinks")
        if self.premium_commission_rate not in self.commission_rates:
            raise ValueError("Premium commission rate must be one of the commission rates")

    def discount_rate_for(self, duration_months: int) -> Decimal:
        """Step function: the highest threshold reached wins."""
        for threshold, rate in self.discount_steps:
            if duration_months >= threshold:
                return rate
        return Decimal("0")

    def add_on_fee(self, add_on: AddOnService) -> Decimal:
        return self.add_on_fees[add_on]

    def add_ons_allowed(self, commission_rate) -> bool:
        return Decimal(str(commission_rate)) == Decimal(self.premium_commission_rate)

    def is_valid_duration(self, duration_months) -> bool:
        return (
            isinstance(duration_months, int)
            and not isinstance(duration_months, bool)
            and self.min_duration_months <= duration_months <= self.max_duration_months
        )


DEFAULT_PRICING = PricingTable()
