"""
Contract scheduling

Where a new contract starts, how long its units stay occupied and when the
vendor starts paying:

    start          = explicit admin date
                     | now, when the marketplace is open
                     | the marketplace opening date
    window end     = start + trial days (trial bookings only) + duration months
    payment starts = start + trial days (trial bookings), start otherwise
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from apps.marketplace.domain import OpeningSchedule
from shared.domain.value_objects import TimeWindow


@dataclass(frozen=True)
class ContractSchedule:
    start: datetime
    window_end: datetime
    payment_liable_from: datetime
    is_trial_booking: bool

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.window_end)


def contract_start(now: datetime, opening: OpeningSchedule, requested_start: datetime | None = None) -> datetime:
    if requested_start is not None:
        return requested_start
    return opening.effective_start(now)


def schedule_contract(
    *,
    now: datetime,
    opening: OpeningSchedule,
    duration_months: int,
    trial_applies: bool,
    trial_days: int,
    requested_start: datetime | None = None,
) -> ContractSchedule:
    start = contract_start(now, opening, requested_start)
    trial = timedelta(days=trial_days) if trial_applies else timedelta(0)
    paid_from = start + trial
    return ContractSchedule(
        start=start,
        window_end=paid_from + relativedelta(months=duration_months),
        payment_liable_from=paid_from,
        is_trial_booking=trial_applies,
    )
