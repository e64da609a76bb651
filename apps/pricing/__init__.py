"""Pricing package.

Pure price calculation shared by the booking request path, booking
confirmation and admin price overrides. Not a Django app: it has no models.
"""

from .calculator import (  # noqa: F401
    AddOnCost,
    PriceBreakdown,
    UnitCost,
    UnitSelection,
    calculate_price,
    normalize_add_ons,
    validate_commission_rate,
    validate_price_overrides,
)
from .tables import DEFAULT_PRICING, AddOnService, PricingTable  # noqa: F401
