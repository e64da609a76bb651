"""
Booking Request Handlers

A vendor asks for a package of units; the request waits on the vendor
record as its single pending booking until an admin confirms or rejects it.

Commands:
- RequestBookingCommand: submit (or replace) the pending booking
- RejectPendingBookingCommand: admin declines the pending booking
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Tuple
from uuid import UUID
import logging

from django.utils import timezone

from apps.pricing import (
    DEFAULT_PRICING,
    PriceBreakdown,
    PricingTable,
    UnitSelection,
    calculate_price,
    normalize_add_ons,
)
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ValidationError

from apps.vendors.domain.audit import AuditLog, AuditRecord
from apps.vendors.domain.entities import PendingBooking

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class RequestBookingCommand:
    vendor_id: UUID
    selections: Tuple[UnitSelection, ...]
    duration_months: int
    commission_rate: int
    add_ons: tuple = ()
    comments: str = ''


@dataclass
class RejectPendingBookingCommand:
    vendor_id: UUID
    reason: str
    actor: str


@dataclass
class BookingRequestResult:
    booking: PendingBooking
    quote: PriceBreakdown
    superseded_booking_id: UUID | None = None


# ===== Command Handlers =====

class RequestBookingHandler:
    """
    Validates the request with the price calculator (the same rules the
    confirmation applies) and stores it as the vendor's pending booking.
    Add-on services are only offered with the premium commission tier.
    """

    def __init__(
        self,
        vendors,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
        pricing: PricingTable = DEFAULT_PRICING,
    ):
        self.vendors = vendors
        self.uow_factory = uow_factory
        self.clock = clock
        self.pricing = pricing

    def handle(self, command: RequestBookingCommand) -> BookingRequestResult:
        add_ons = normalize_add_ons(command.add_ons)
        if add_ons and not self.pricing.add_ons_allowed(command.commission_rate):
            raise ValidationError(
                f"Add-on services require the {self.pricing.premium_commission_rate}% commission tier"
            )
        quote = calculate_price(
            command.selections,
            command.duration_months,
            command.commission_rate,
            add_ons,
            table=self.pricing,
        )

        now = self.clock()
        booking = PendingBooking(
            selections=tuple(command.selections),
            duration_months=command.duration_months,
            commission_rate=quote.commission_rate,
            add_ons=add_ons,
            comments=command.comments,
            created_at=now,
        )
        with self.uow_factory() as uow:
            vendor = self.vendors.get(command.vendor_id, lock=True)
            superseded = vendor.request_booking(booking, now)
            self.vendors.save(vendor)
            uow.collect_events(vendor)

        if superseded:
            logger.info(f"Booking request {superseded.id} of vendor {vendor.id} superseded by {booking.id}")
        logger.info(
            f"Vendor {vendor.id} requested {sum(s.count for s in booking.selections)} units "
            f"for {booking.duration_months} months"
        )
        return BookingRequestResult(
            booking=booking,
            quote=quote,
            superseded_booking_id=superseded.id if superseded else None,
        )


class RejectPendingBookingHandler:

    def __init__(
        self,
        vendors,
        audit: AuditLog,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.vendors = vendors
        self.audit = audit
        self.uow_factory = uow_factory
        self.clock = clock

    def handle(self, command: RejectPendingBookingCommand) -> PendingBooking:
        with self.uow_factory() as uow:
            vendor = self.vendors.get(command.vendor_id, lock=True)
            rejected = vendor.reject_pending_booking(command.reason, self.clock())
            self.vendors.save(vendor)
            self.audit.append(AuditRecord(
                action='booking_rejected',
                actor=command.actor,
                vendor_id=vendor.id,
                reason=command.reason,
                details={'booking_id': str(rejected.id)},
            ))
            uow.collect_events(vendor)
        return rejected
