"""
Common Value Objects

Value objects used across multiple domains:
- quantize_money: cent rounding for EUR amounts (rounding happens only for display)
- TimeWindow: Half-open time interval used for contract availability impact
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

CENT = Decimal('0.01')


def quantize_money(amount: Decimal) -> Decimal:
    """Round a monetary amount to cents for presentation"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents the interval [start, end): start inclusive, end exclusive.
    An open end (``end=None``) denotes a single instant at ``start``.
    """
    start: datetime
    end: datetime | None = None

    def __post_init__(self):
        if self.end is not None and self.start >= self.end:
            raise ValueError(f"Window start ({self.start}) must be before end ({self.end})")

    @property
    def is_instant(self) -> bool:
        return self.end is None

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        Adjacent windows don't overlap: a window ending exactly when another
        starts is free. An instant overlaps a window that contains it.

        Examples:
            - [1, 5) overlaps with [4, 8) -> True
            - [1, 5) overlaps with [5, 8) -> False (adjacent)
            - instant 5 overlaps with [1, 5) -> False
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")

        if self.is_instant:
            return other.contains(self.start)
        if other.is_instant:
            return self.contains(other.start)

        # Overlap formula: start1 < end2 AND end1 > start2
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        """Start is inclusive, end is exclusive"""
        if self.end is None:
            return moment == self.start
        return self.start <= moment < self.end

    def __str__(self):
        end = self.end.isoformat() if self.end else '...'
        return f"[{self.start.isoformat()}, {end})"
