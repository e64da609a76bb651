"""Opening schedule value object."""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class OpeningSchedule(ValueObject):
    """
    Marketplace opening configuration

    The gate only holds the marketplace closed while it is enabled, has a
    date, and that date lies in the future.
    """
    enabled: bool = False
    opening_at: datetime | None = None

    def is_open(self, now: datetime) -> bool:
        if not self.enabled or self.opening_at is None:
            return True
        return now >= self.opening_at

    def effective_start(self, now: datetime) -> datetime:
        """Earliest moment a new contract may start"""
        if self.is_open(now):
            return now
        return self.opening_at


ALWAYS_OPEN = OpeningSchedule()
