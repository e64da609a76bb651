"""Service layer for vendors: wiring of the trial manager and thin entry points.

Controllers, admin actions and Celery tasks call these functions; they build
the use-case objects with the ORM-backed collaborators.
"""

from __future__ import annotations

import logging
from uuid import UUID

from django.conf import settings  # type: ignore

from apps.marketplace.services import get_opening_schedule
from apps.pricing import UnitSelection

from .application.booking_requests import (
    BookingRequestResult,
    RejectPendingBookingCommand,
    RejectPendingBookingHandler,
    RequestBookingCommand,
    RequestBookingHandler,
)
from .application.trial_manager import BulkResult, TrialLifecycleManager, TrialResult
from .domain.entities import TrialPolicy, Vendor
from .models import Vendor as VendorModel
from .repository import DjangoAuditLog, DjangoVendorRepository

logger = logging.getLogger(__name__)


def get_trial_policy() -> TrialPolicy:
    config = getattr(settings, "MARKETPLACE", {})
    return TrialPolicy(
        length_days=int(config.get("TRIAL_LENGTH_DAYS", 30)),
        reminder_days=tuple(config.get("TRIAL_REMINDER_DAYS", (7, 3, 1))),
    )


def build_trial_manager() -> TrialLifecycleManager:
    return TrialLifecycleManager(
        vendors=DjangoVendorRepository(),
        audit=DjangoAuditLog(),
        opening_provider=get_opening_schedule,
        policy=get_trial_policy(),
    )


def register_vendor(name: str, email: str, *, user=None, phone: str = "") -> Vendor:
    """Create a preregistered vendor."""
    vendor = Vendor(name=name, email=email)
    DjangoVendorRepository().add(vendor)
    if user is not None or phone:
        VendorModel.objects.filter(pk=vendor.id).update(user=user, phone=phone)
    return vendor


# ============================================================================
# TRIAL LIFECYCLE
# ============================================================================

def activate_trial(vendor_id: UUID, actor: str = "system") -> TrialResult:
    return build_trial_manager().activate_trial(vendor_id, actor=actor)


def extend_trial(vendor_id: UUID, days: int, actor: str, reason: str = "") -> TrialResult:
    return build_trial_manager().extend_trial(vendor_id, days, actor=actor, reason=reason)


def cancel_trial(vendor_id: UUID, reason: str, actor: str = "system") -> TrialResult:
    return build_trial_manager().cancel_trial(vendor_id, reason, actor=actor)


def convert_trial(vendor_id: UUID, actor: str = "system") -> TrialResult:
    return build_trial_manager().convert_trial(vendor_id, actor=actor)


def reactivate_vendor(vendor_id: UUID, actor: str, reason: str = "") -> TrialResult:
    return build_trial_manager().reactivate(vendor_id, actor=actor, reason=reason)


def bulk_trial_operation(vendor_ids, operation, params=None, actor: str = "system") -> BulkResult:
    return build_trial_manager().bulk_trial_operation(vendor_ids, operation, params, actor=actor)


def audit_log(**filters):
    return build_trial_manager().audit_log(**filters)


# ============================================================================
# BOOKING REQUESTS
# ============================================================================

def request_booking(
    vendor_id: UUID,
    selections,
    duration_months: int,
    commission_rate: int,
    add_ons=(),
    comments: str = "",
) -> BookingRequestResult:
    selections = tuple(
        item if isinstance(item, UnitSelection) else UnitSelection(**item)
        for item in selections
    )
    handler = RequestBookingHandler(vendors=DjangoVendorRepository())
    return handler.handle(
        RequestBookingCommand(
            vendor_id=vendor_id,
            selections=selections,
            duration_months=duration_months,
            commission_rate=commission_rate,
            add_ons=add_ons or (),
            comments=comments,
        )
    )


def reject_pending_booking(vendor_id: UUID, reason: str, actor: str):
    handler = RejectPendingBookingHandler(vendors=DjangoVendorRepository(), audit=DjangoAuditLog())
    return handler.handle(RejectPendingBookingCommand(vendor_id=vendor_id, reason=reason, actor=actor))
