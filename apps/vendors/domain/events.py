"""
Vendor Domain Events

Events raised by the vendor trial state machine and by booking requests.
They are published after the surrounding transaction commits and feed the
notification outbox. Every event carries the vendor's contact fields so
the outbound message can be rendered without another lookup.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class VendorEvent(DomainEvent):
    vendor_id: UUID
    vendor_name: str = ''
    vendor_email: str = ''


# ===== Trial Events =====

@dataclass(kw_only=True)
class TrialActivated(VendorEvent):
    """
    Event: Trial started (PREREGISTERED -> TRIAL_ACTIVE)

    Triggers:
    - Welcome email with the trial end date
    """
    trial_start: datetime
    trial_end: datetime


@dataclass(kw_only=True)
class TrialExpiring(VendorEvent):
    """Event: Trial ends within one of the configured reminder thresholds"""
    trial_end: datetime
    reminder_days: int


@dataclass(kw_only=True)
class TrialExpired(VendorEvent):
    """Event: Trial ran out (TRIAL_ACTIVE -> TRIAL_EXPIRED)"""
    trial_end: datetime


@dataclass(kw_only=True)
class TrialExtended(VendorEvent):
    """Event: Admin pushed the trial end date forward"""
    days: int
    previous_end: datetime
    new_end: datetime
    actor: str
    reason: str = ''


@dataclass(kw_only=True)
class TrialConverted(VendorEvent):
    """Event: Vendor became a paying vendor (-> ACTIVE)"""
    converted_at: datetime


@dataclass(kw_only=True)
class VendorCancelled(VendorEvent):
    """
    Event: Vendor cancelled

    Triggers:
    - Vendor hidden from public listings
    - Cancellation confirmation email
    """
    previous_status: str
    reason: str = ''


@dataclass(kw_only=True)
class VendorReactivated(VendorEvent):
    """Event: Admin restored a cancelled vendor"""
    status: str


# ===== Booking Request Events =====

@dataclass(kw_only=True)
class BookingRequested(VendorEvent):
    """Event: Vendor submitted a booking request awaiting admin confirmation"""
    booking_id: UUID
    superseded_booking_id: UUID | None = None


@dataclass(kw_only=True)
class BookingRequestRejected(VendorEvent):
    """Event: Admin rejected the pending booking request"""
    booking_id: UUID
    reason: str = ''
