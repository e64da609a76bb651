"""
Contract Domain Events

Events that represent things that have happened to rental contracts.
These are published after successful transaction commits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class ContractEvent(DomainEvent):
    contract_id: UUID
    vendor_id: UUID
    unit_ids: List[UUID] = field(default_factory=list)


@dataclass(kw_only=True)
class ContractConfirmed(ContractEvent):
    """
    Event: A pending booking became a binding contract

    Triggers:
    - Booking confirmation email to the vendor
    - Display availability cache invalidation
    """
    vendor_name: str = ''
    vendor_email: str = ''
    unit_labels: List[str] = field(default_factory=list)
    scheduled_start: datetime
    window_end: datetime
    payment_liable_from: datetime
    duration_months: int
    monthly_total: str
    is_trial_booking: bool = False


@dataclass(kw_only=True)
class ContractActivated(ContractEvent):
    """Event: Contract start reached (SCHEDULED -> ACTIVE)"""
    activated_at: datetime


@dataclass(kw_only=True)
class ContractEnded(ContractEvent):
    """Event: Contract window elapsed; its units were released"""
    ended_at: datetime


@dataclass(kw_only=True)
class TrialBookingCancelled(ContractEvent):
    """Event: Vendor cancelled a trial booking before payment liability started"""
    reason: str = ''
    cancelled_at: datetime
