"""Service layer for contracts: builds the use cases with their ORM collaborators.

Admin actions, tasks and any future API call these functions instead of
instantiating handlers themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from django.utils import timezone  # type: ignore

from apps.marketplace.services import get_opening_schedule
from apps.units.repository import DjangoUnitRegistry
from apps.vendors.repository import DjangoAuditLog, DjangoVendorRepository
from apps.vendors.services import build_trial_manager

from .application.confirm_booking import ConfirmBookingCommand, ConfirmBookingHandler, ContractResult
from .application.lifecycle import ContractLifecycle
from .availability import ContractAvailabilityIndex
from .cache import DisplayAvailabilityCache
from .domain.entities import Contract
from .repository import DjangoContractRepository

logger = logging.getLogger(__name__)


def build_availability_index() -> ContractAvailabilityIndex:
    return ContractAvailabilityIndex(
        units=DjangoUnitRegistry(),
        contracts=DjangoContractRepository(),
        clock=timezone.now,
    )


def build_confirm_handler() -> ConfirmBookingHandler:
    units = DjangoUnitRegistry()
    contracts = DjangoContractRepository()
    return ConfirmBookingHandler(
        units=units,
        availability=ContractAvailabilityIndex(units=units, contracts=contracts),
        contracts=contracts,
        vendors=DjangoVendorRepository(),
        trials=build_trial_manager(),
        audit=DjangoAuditLog(),
        opening_provider=get_opening_schedule,
    )


def build_contract_lifecycle() -> ContractLifecycle:
    return ContractLifecycle(
        contracts=DjangoContractRepository(),
        units=DjangoUnitRegistry(),
        audit=DjangoAuditLog(),
    )


# ============================================================================
# BOOKING CONFIRMATION
# ============================================================================

def confirm_booking(
    vendor_id: UUID,
    unit_ids,
    price_overrides: dict | None = None,
    scheduled_start: datetime | None = None,
    add_ons=None,
    actor: str = "system",
) -> ContractResult:
    return build_confirm_handler().handle(
        ConfirmBookingCommand(
            vendor_id=vendor_id,
            unit_ids=tuple(unit_ids or ()),
            price_overrides=price_overrides,
            scheduled_start=scheduled_start,
            add_ons=add_ons,
            actor=actor,
        )
    )


def cancel_trial_booking(contract_id: UUID, reason: str, actor: str = "system") -> Contract:
    return build_contract_lifecycle().cancel_trial_booking(contract_id, reason, actor=actor)


def contracts_for_vendor(vendor_id: UUID):
    return DjangoContractRepository().for_vendor(vendor_id)


# ============================================================================
# AVAILABILITY
# ============================================================================

def is_unit_available(unit_id: UUID, window_start: datetime, window_end: datetime | None = None) -> bool:
    return build_availability_index().is_available(unit_id, window_start, window_end)


def find_available_units(
    unit_type: str | None = None,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
):
    return build_availability_index().find_available_units(unit_type, window_start, window_end)


def find_available_units_for_display(
    unit_type: str | None = None,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
):
    """Possibly stale listing for display; never use it to decide an allocation."""
    cache = DisplayAvailabilityCache(build_availability_index())
    return cache.find_available_units_for_display(unit_type, window_start, window_end)
