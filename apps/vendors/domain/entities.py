"""
Vendor Aggregate

The vendor's registration/trial state machine and its owned pending
booking request.

States:
    preregistered -> trial_active -> {trial_expired, cancelled}
    trial_active / trial_expired -> active
    any non-terminal state -> cancelled
    cancelled -> (admin reactivation) status held before cancellation

Trial timing invariant while trial_active:
    trial_end == trial_start + policy.length_days + sum(extension days)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Set, Tuple, Union
from uuid import UUID, uuid4

from apps.pricing import AddOnService, UnitSelection
from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import NotFoundError, StateError, ValidationError

from .events import (
    BookingRequested,
    BookingRequestRejected,
    TrialActivated,
    TrialConverted,
    TrialExpired,
    TrialExpiring,
    TrialExtended,
    VendorCancelled,
    VendorReactivated,
)


class RegistrationStatus(str, Enum):
    PREREGISTERED = 'preregistered'
    TRIAL_ACTIVE = 'trial_active'
    TRIAL_EXPIRED = 'trial_expired'
    ACTIVE = 'active'
    CANCELLED = 'cancelled'


NON_TERMINAL_STATUSES = frozenset({
    RegistrationStatus.PREREGISTERED,
    RegistrationStatus.TRIAL_ACTIVE,
    RegistrationStatus.TRIAL_EXPIRED,
    RegistrationStatus.ACTIVE,
})

VISIBLE_STATUSES = frozenset({
    RegistrationStatus.TRIAL_ACTIVE,
    RegistrationStatus.ACTIVE,
})


@dataclass(frozen=True)
class TrialPolicy:
    """Trial length and reminder thresholds (days before trial end)"""
    length_days: int = 30
    reminder_days: Tuple[int, ...] = (7, 3, 1)

    def __post_init__(self):
        if self.length_days <= 0:
            raise ValueError("Trial length must be positive")
        if any(days <= 0 for days in self.reminder_days):
            raise ValueError("Reminder thresholds must be positive")

    @property
    def length(self) -> timedelta:
        return timedelta(days=self.length_days)


# ===== Pending booking (owned value, tagged variant) =====

class PendingBookingStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class NoPendingBooking:
    """The vendor has no open booking request"""

    @property
    def is_pending(self) -> bool:
        return False


NO_PENDING_BOOKING = NoPendingBooking()


@dataclass(frozen=True)
class PendingBooking:
    """A booking request awaiting admin confirmation"""
    selections: Tuple[UnitSelection, ...]
    duration_months: int
    commission_rate: Decimal
    add_ons: Tuple[AddOnService, ...] = ()
    comments: str = ''
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    status: PendingBookingStatus = PendingBookingStatus.PENDING
    contract_id: UUID | None = None
    resolution_note: str = ''

    @property
    def is_pending(self) -> bool:
        return self.status == PendingBookingStatus.PENDING

    def closed(self, status: PendingBookingStatus, *, contract_id=None, note: str = '') -> 'PendingBooking':
        return PendingBooking(
            selections=self.selections,
            duration_months=self.duration_months,
            commission_rate=self.commission_rate,
            add_ons=self.add_ons,
            comments=self.comments,
            id=self.id,
            created_at=self.created_at,
            status=status,
            contract_id=contract_id,
            resolution_note=note,
        )


PendingBookingState = Union[NoPendingBooking, PendingBooking]


# ===== Vendor aggregate =====

@dataclass(kw_only=True, eq=False)
class Vendor(Aggregate):
    """
    Vendor Aggregate Root

    Owns the trial lifecycle and the single pending booking request.
    All mutating methods return ``True`` when state changed and ``False``
    for idempotent no-ops; illegal transitions raise ``StateError``.
    """
    name: str = ''
    email: str = ''
    status: RegistrationStatus = RegistrationStatus.PREREGISTERED
    trial_start: datetime | None = None
    trial_end: datetime | None = None
    is_publicly_visible: bool = False
    status_before_cancellation: RegistrationStatus | None = None
    cancellation_reason: str = ''
    cancelled_at: datetime | None = None
    converted_at: datetime | None = None
    reminders_sent: Set[int] = field(default_factory=set)
    pending_booking: PendingBookingState = NO_PENDING_BOOKING
    closed_bookings: List[PendingBooking] = field(default_factory=list, repr=False)

    def _event_kwargs(self) -> dict:
        return {
            'aggregate_id': self.id,
            'vendor_id': self.id,
            'vendor_name': self.name,
            'vendor_email': self.email,
        }

    def _touch(self, now: datetime):
        self.updated_at = now

    # --- trial queries ---

    def has_trial_time(self, now: datetime) -> bool:
        return (
            self.status == RegistrationStatus.TRIAL_ACTIVE
            and self.trial_end is not None
            and self.trial_end > now
        )

    def is_trial_eligible(self, now: datetime) -> bool:
        """A new booking still falls under the free trial"""
        return self.status == RegistrationStatus.PREREGISTERED or self.has_trial_time(now)

    def days_until_trial_end(self, now: datetime) -> int | None:
        if self.trial_end is None:
            return None
        remaining = self.trial_end - now
        days = remaining.days
        if remaining - timedelta(days=days) > timedelta(0):
            days += 1
        return days

    # --- transitions ---

    def activate_trial(self, now: datetime, policy: TrialPolicy) -> bool:
        if self.status == RegistrationStatus.TRIAL_ACTIVE:
            return False
        if self.status != RegistrationStatus.PREREGISTERED:
            raise StateError(f"Cannot start a trial for a vendor in status {self.status.value}")

        self.status = RegistrationStatus.TRIAL_ACTIVE
        self.trial_start = now
        self.trial_end = now + policy.length
        self.reminders_sent = set()
        self.is_publicly_visible = True
        self._touch(now)
        self.add_event(TrialActivated(
            trial_start=self.trial_start,
            trial_end=self.trial_end,
            **self._event_kwargs(),
        ))
        return True

    def expire_trial(self, now: datetime, *, force: bool = False) -> bool:
        """
        Sweep expiry (``force=False``) only fires once the end date has
        passed; admin expiry (``force=True``) ends the trial immediately.
        """
        if self.status == RegistrationStatus.TRIAL_EXPIRED:
            return False
        if self.status != RegistrationStatus.TRIAL_ACTIVE:
            raise StateError(f"Cannot expire a trial for a vendor in status {self.status.value}")
        if not force and self.has_trial_time(now):
            return False

        if force and self.trial_end and self.trial_end > now:
            self.trial_end = now
        self.status = RegistrationStatus.TRIAL_EXPIRED
        self._touch(now)
        self.add_event(TrialExpired(trial_end=self.trial_end, **self._event_kwargs()))
        return True

    def extend_trial(self, days: int, now: datetime, *, actor: str, reason: str = '') -> Tuple[datetime, datetime]:
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("Extension days must be a positive whole number")
        if self.status != RegistrationStatus.TRIAL_ACTIVE:
            raise StateError(f"Cannot extend a trial for a vendor in status {self.status.value}")

        previous_end = self.trial_end
        self.trial_end = previous_end + timedelta(days=days)
        self.reminders_sent = set()
        self._touch(now)
        self.add_event(TrialExtended(
            days=days,
            previous_end=previous_end,
            new_end=self.trial_end,
            actor=actor,
            reason=reason,
            **self._event_kwargs(),
        ))
        return previous_end, self.trial_end

    def convert(self, now: datetime) -> bool:
        if self.status == RegistrationStatus.ACTIVE:
            return False
        if self.status not in (RegistrationStatus.TRIAL_ACTIVE, RegistrationStatus.TRIAL_EXPIRED):
            raise StateError(f"Cannot convert a vendor in status {self.status.value}")

        self.status = RegistrationStatus.ACTIVE
        self.converted_at = now
        self.is_publicly_visible = True
        self._touch(now)
        self.add_event(TrialConverted(converted_at=now, **self._event_kwargs()))
        return True

    def cancel(self, reason: str, now: datetime) -> bool:
        if self.status == RegistrationStatus.CANCELLED:
            raise StateError("Vendor is already cancelled")

        previous = self.status
        self.status_before_cancellation = previous
        self.status = RegistrationStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.is_publicly_visible = False
        self._touch(now)
        self.add_event(VendorCancelled(previous_status=previous.value, reason=reason, **self._event_kwargs()))
        return True

    def reactivate(self, now: datetime) -> bool:
        if self.status != RegistrationStatus.CANCELLED:
            raise StateError(f"Only cancelled vendors can be reactivated (status {self.status.value})")

        restored = self.status_before_cancellation or RegistrationStatus.PREREGISTERED
        if restored == RegistrationStatus.TRIAL_ACTIVE and not (self.trial_end and self.trial_end > now):
            restored = RegistrationStatus.TRIAL_EXPIRED

        self.status = restored
        self.status_before_cancellation = None
        self.cancellation_reason = ''
        self.cancelled_at = None
        self.is_publicly_visible = restored in VISIBLE_STATUSES
        self._touch(now)
        self.add_event(VendorReactivated(status=restored.value, **self._event_kwargs()))
        return True

    # --- reminders ---

    def due_reminder(self, now: datetime, policy: TrialPolicy) -> int | None:
        """
        Most urgent reminder threshold reached but not yet sent.
        Larger thresholds that were skipped count as covered by it.
        """
        if not self.has_trial_time(now):
            return None
        days_left = self.days_until_trial_end(now)
        reached = sorted(days for days in policy.reminder_days if days_left <= days)
        if not reached or reached[0] in self.reminders_sent:
            return None
        return reached[0]

    def record_reminder(self, threshold: int, now: datetime, policy: TrialPolicy):
        self.reminders_sent |= {days for days in policy.reminder_days if days >= threshold}
        self._touch(now)
        self.add_event(TrialExpiring(
            trial_end=self.trial_end,
            reminder_days=threshold,
            **self._event_kwargs(),
        ))

    def reset_reminders(self, now: datetime) -> bool:
        if not self.reminders_sent:
            return False
        self.reminders_sent = set()
        self._touch(now)
        return True

    # --- pending booking ---

    def request_booking(self, booking: PendingBooking, now: datetime) -> PendingBooking | None:
        """Store a new request; a still-pending older request is superseded."""
        if self.status == RegistrationStatus.CANCELLED:
            raise StateError("Cancelled vendors cannot request bookings")

        superseded = None
        if self.pending_booking.is_pending:
            superseded = self.pending_booking.closed(
                PendingBookingStatus.CANCELLED, note='superseded by a newer request'
            )
            self.closed_bookings.append(superseded)

        self.pending_booking = booking
        self._touch(now)
        self.add_event(BookingRequested(
            booking_id=booking.id,
            superseded_booking_id=superseded.id if superseded else None,
            **self._event_kwargs(),
        ))
        return superseded

    def require_pending_booking(self) -> PendingBooking:
        if isinstance(self.pending_booking, NoPendingBooking):
            raise NotFoundError(f"Vendor {self.id} has no pending booking")
        if not self.pending_booking.is_pending:
            raise StateError(
                f"Booking {self.pending_booking.id} is {self.pending_booking.status.value}, not pending"
            )
        return self.pending_booking

    def complete_pending_booking(self, contract_id: UUID, now: datetime) -> PendingBooking:
        booking = self.require_pending_booking()
        completed = booking.closed(PendingBookingStatus.COMPLETED, contract_id=contract_id)
        self.closed_bookings.append(completed)
        self.pending_booking = completed
        self._touch(now)
        return completed

    def reject_pending_booking(self, reason: str, now: datetime) -> PendingBooking:
        booking = self.require_pending_booking()
        rejected = booking.closed(PendingBookingStatus.CANCELLED, note=reason)
        self.closed_bookings.append(rejected)
        self.pending_booking = NO_PENDING_BOOKING
        self._touch(now)
        self.add_event(BookingRequestRejected(booking_id=booking.id, reason=reason, **self._event_kwargs()))
        return rejected
