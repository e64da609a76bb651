"""
Contract Aggregate

The binding allocation record: one vendor, an ordered set of unit line
items, a frozen price and an availability impact window [start, end).

Status flow:
    scheduled -> active -> ended
    scheduled | active -> cancelled_during_trial (trial bookings, before payment starts)

Contracts are never deleted; only their status moves.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Tuple
from uuid import UUID

from shared.domain.base import Aggregate
from shared.domain.exceptions import StateError
from shared.domain.value_objects import TimeWindow

from .events import ContractActivated, ContractConfirmed, ContractEnded, TrialBookingCancelled
from .scheduling import ContractSchedule


class ContractStatus(str, Enum):
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    CANCELLED_DURING_TRIAL = 'cancelled_during_trial'
    ENDED = 'ended'


# Only these statuses occupy units.
BLOCKING_STATUSES = frozenset({ContractStatus.SCHEDULED, ContractStatus.ACTIVE})


@dataclass(frozen=True)
class ContractLine:
    """Service line item: one unit at its monthly price for the contract window"""
    unit_id: UUID
    monthly_price: Decimal
    start: datetime
    end: datetime
    unit_label: str = ''
    unit_type: str = ''
    position: int = 0


@dataclass(kw_only=True, eq=False)
class Contract(Aggregate):
    """
    Contract Aggregate Root

    Invariant: non-cancelled contracts on the same unit never have
    overlapping windows (enforced by the availability re-check and the
    unit claim at confirmation time).
    """
    vendor_id: UUID
    status: ContractStatus = ContractStatus.SCHEDULED
    lines: Tuple[ContractLine, ...] = ()
    scheduled_start: datetime
    duration_months: int
    window_end: datetime
    discount_rate: Decimal = Decimal('0')
    commission_rate: Decimal = Decimal('0')
    total_monthly_price: Decimal = Decimal('0')
    add_ons: Tuple[str, ...] = ()
    price_breakdown: dict = field(default_factory=dict)
    is_trial_booking: bool = False
    trial_vendor_id: UUID | None = None
    payment_liable_from: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str = ''

    @classmethod
    def confirm(
        cls,
        *,
        vendor,
        units,
        price,
        schedule: ContractSchedule,
        now: datetime,
    ) -> 'Contract':
        """
        Build a scheduled contract from priced units.

        ``price`` is the PriceBreakdown whose unit costs follow ``units`` order.
        """
        unit_prices = {cost.unit_id: cost.monthly_base_price for cost in price.unit_costs}
        lines = tuple(
            ContractLine(
                unit_id=unit.id,
                monthly_price=unit_prices[unit.id],
                start=schedule.start,
                end=schedule.window_end,
                unit_label=unit.label,
                unit_type=unit.unit_type,
                position=position,
            )
            for position, unit in enumerate(units)
        )
        contract = cls(
            vendor_id=vendor.id,
            lines=lines,
            scheduled_start=schedule.start,
            duration_months=price.duration_months,
            window_end=schedule.window_end,
            discount_rate=price.discount_rate,
            commission_rate=price.commission_rate,
            total_monthly_price=price.monthly_total,
            add_ons=tuple(cost.add_on.value for cost in price.add_on_costs),
            price_breakdown=price.as_dict(),
            is_trial_booking=schedule.is_trial_booking,
            trial_vendor_id=vendor.id if schedule.is_trial_booking else None,
            payment_liable_from=schedule.payment_liable_from,
            created_at=now,
            updated_at=now,
        )
        contract.add_event(ContractConfirmed(
            aggregate_id=contract.id,
            contract_id=contract.id,
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            vendor_email=vendor.email,
            unit_ids=contract.unit_ids,
            unit_labels=[line.unit_label for line in lines],
            scheduled_start=contract.scheduled_start,
            window_end=contract.window_end,
            payment_liable_from=contract.payment_liable_from,
            duration_months=contract.duration_months,
            monthly_total=str(price.rounded().monthly_total),
            is_trial_booking=contract.is_trial_booking,
        ))
        return contract

    @property
    def unit_ids(self) -> List[UUID]:
        return [line.unit_id for line in self.lines]

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.scheduled_start, self.window_end)

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def _event_kwargs(self) -> dict:
        return {
            'aggregate_id': self.id,
            'contract_id': self.id,
            'vendor_id': self.vendor_id,
            'unit_ids': self.unit_ids,
        }

    def activate(self, now: datetime) -> bool:
        if self.status != ContractStatus.SCHEDULED or now < self.scheduled_start:
            return False
        self.status = ContractStatus.ACTIVE
        self.updated_at = now
        self.add_event(ContractActivated(activated_at=now, **self._event_kwargs()))
        return True

    def end(self, now: datetime) -> bool:
        if not self.is_blocking or now < self.window_end:
            return False
        self.status = ContractStatus.ENDED
        self.updated_at = now
        self.add_event(ContractEnded(ended_at=now, **self._event_kwargs()))
        return True

    def cancel_during_trial(self, reason: str, now: datetime):
        if not self.is_trial_booking:
            raise StateError(f"Contract {self.id} is not a trial booking")
        if not self.is_blocking:
            raise StateError(f"Contract {self.id} is already {self.status.value}")
        if self.payment_liable_from is not None and now >= self.payment_liable_from:
            raise StateError(f"Trial period of contract {self.id} is over")

        self.status = ContractStatus.CANCELLED_DURING_TRIAL
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.updated_at = now
        self.add_event(TrialBookingCancelled(reason=reason, cancelled_at=now, **self._event_kwargs()))
