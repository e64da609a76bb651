"""
Booking Confirmation Handler

Turns a vendor's pending booking into a scheduled contract.

Steps:
1. Validate the command (unit ids, price overrides, add-ons) and refuse
   cancelled vendors
2. Re-check every unit against the availability index inside the transaction
3. Price the units, with admin overrides replacing catalog prices
4. Schedule the contract window and the trial/payment start
5. Commit: claim every unit, store the contract, complete the pending
   booking, start the vendor's trial when due, write audit entries
6. ContractConfirmed is published after commit

A conflict at step 2 or during the claim aborts the whole confirmation;
nothing is left half-assigned.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Tuple
from uuid import UUID
import logging

from django.utils import timezone

from apps.marketplace.domain import ALWAYS_OPEN, OpeningSchedule
from apps.pricing import (
    DEFAULT_PRICING,
    PriceBreakdown,
    PricingTable,
    UnitSelection,
    calculate_price,
    normalize_add_ons,
    validate_price_overrides,
)
from apps.units.domain.entities import Unit
from apps.vendors.domain.audit import AuditLog, AuditRecord
from apps.vendors.domain.entities import RegistrationStatus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ConflictError, StateError, ValidationError

from apps.contracts.domain.entities import Contract
from apps.contracts.domain.scheduling import schedule_contract

logger = logging.getLogger(__name__)


# ===== Command =====

@dataclass
class ConfirmBookingCommand:
    vendor_id: UUID
    unit_ids: Tuple[UUID, ...]
    price_overrides: Dict[str, object] | None = None
    scheduled_start: datetime | None = None
    add_ons: tuple | None = None
    actor: str = 'system'


@dataclass
class ContractResult:
    contract: Contract
    price: PriceBreakdown
    trial_started: bool = False
    applied_overrides: Dict[str, str] = field(default_factory=dict)

    @property
    def contract_id(self) -> UUID:
        return self.contract.id


# ===== Command Handler =====

class ConfirmBookingHandler:
    """
    Handler for ConfirmBookingCommand

    Collaborators are injected: unit registry, availability index (never
    the display cache), contract and vendor repositories, the trial
    lifecycle manager, the audit log, an opening schedule provider, a
    unit-of-work factory, a clock and the pricing table.
    """

    def __init__(
        self,
        units,
        availability,
        contracts,
        vendors,
        trials,
        audit: AuditLog,
        opening_provider: Callable[[], OpeningSchedule] = lambda: ALWAYS_OPEN,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
        pricing: PricingTable = DEFAULT_PRICING,
    ):
        self.units = units
        self.availability = availability
        self.contracts = contracts
        self.vendors = vendors
        self.trials = trials
        self.audit = audit
        self.opening_provider = opening_provider
        self.uow_factory = uow_factory
        self.clock = clock
        self.pricing = pricing

    def handle(self, command: ConfirmBookingCommand) -> ContractResult:
        unit_ids = self._validate_unit_ids(command.unit_ids)
        overrides = validate_price_overrides(command.price_overrides, unit_ids, self.pricing)
        now = self.clock()

        with self.uow_factory() as uow:
            vendor = self.vendors.get(command.vendor_id, lock=True)
            if vendor.status == RegistrationStatus.CANCELLED:
                raise StateError(f"Vendor {vendor.id} is cancelled; reactivate before confirming a booking")
            booking = vendor.require_pending_booking()
            add_ons = self._resolve_add_ons(command.add_ons, booking.add_ons)

            units = self.units.get_units(unit_ids, lock=True)
            terms = self.trials.trial_terms(
                vendor, now,
                has_live_trial_booking=self.contracts.has_live_trial_booking(vendor.id),
            )
            schedule = schedule_contract(
                now=now,
                opening=self.opening_provider(),
                duration_months=booking.duration_months,
                trial_applies=terms.applies,
                trial_days=terms.trial_days,
                requested_start=command.scheduled_start,
            )

            conflicts = self.availability.check_units(units, schedule.window)
            if conflicts:
                raise ConflictError(
                    f"{len(conflicts)} of {len(units)} units cannot be allocated",
                    conflicts,
                )

            price = calculate_price(
                self._selections(units, overrides),
                booking.duration_months,
                booking.commission_rate,
                add_ons,
                table=self.pricing,
            )
            contract = Contract.confirm(
                vendor=vendor, units=units, price=price, schedule=schedule, now=now
            )

            self._claim_units(units, vendor.id, contract.id)
            try:
                self.contracts.add(contract)
                vendor.complete_pending_booking(contract.id, now)
                trial_started = False
                if schedule.is_trial_booking:
                    trial_started = self.trials.start_trial_for_booking(vendor, now)
                self.vendors.save(vendor)
            except Exception:
                self._release(units, contract.id)
                raise

            self.audit.append(AuditRecord(
                action='booking_confirmed',
                actor=command.actor,
                vendor_id=vendor.id,
                details={
                    'contract_id': str(contract.id),
                    'booking_id': str(booking.id),
                    'unit_ids': [str(unit_id) for unit_id in contract.unit_ids],
                    'is_trial_booking': contract.is_trial_booking,
                },
            ))
            for unit in units:
                if str(unit.id) in overrides:
                    self.audit.append(AuditRecord(
                        action='price_override',
                        actor=command.actor,
                        vendor_id=vendor.id,
                        details={
                            'contract_id': str(contract.id),
                            'unit_id': str(unit.id),
                            'catalog_price': str(unit.base_price),
                            'override_price': str(overrides[str(unit.id)]),
                        },
                    ))

            uow.collect_events(contract)
            uow.collect_events(vendor)

        logger.info(
            f"Contract {contract.id} confirmed for vendor {vendor.id}: "
            f"{len(units)} units, {contract.duration_months} months, "
            f"start {contract.scheduled_start.isoformat()}"
            f"{' (trial booking)' if contract.is_trial_booking else ''}"
        )
        return ContractResult(
            contract=contract,
            price=price,
            trial_started=trial_started,
            applied_overrides={key: str(value) for key, value in overrides.items()},
        )

    # ===== Internals =====

    @staticmethod
    def _validate_unit_ids(unit_ids) -> List[UUID]:
        unit_ids = list(unit_ids or ())
        if not unit_ids:
            raise ValidationError("At least one unit must be assigned")
        seen = set()
        duplicates = []
        for unit_id in unit_ids:
            key = str(unit_id)
            if key in seen:
                duplicates.append(key)
            seen.add(key)
        if duplicates:
            raise ValidationError(f"Units assigned more than once: {', '.join(duplicates)}")
        return unit_ids

    @staticmethod
    def _resolve_add_ons(requested, booked) -> tuple:
        """None keeps the add-ons of the request; otherwise only a subset of them"""
        if requested is None:
            return tuple(booked)
        chosen = normalize_add_ons(requested)
        extra = [add_on.value for add_on in chosen if add_on not in booked]
        if extra:
            raise ValidationError(f"Add-on services were not requested: {', '.join(extra)}")
        return chosen

    @staticmethod
    def _selections(units: List[Unit], overrides: dict) -> List[UnitSelection]:
        return [
            UnitSelection(
                unit_type=unit.unit_type,
                monthly_base_price=overrides.get(str(unit.id), unit.base_price),
                unit_id=unit.id,
            )
            for unit in units
        ]

    def _claim_units(self, units: List[Unit], vendor_id: UUID, contract_id: UUID):
        """Compare-and-swap claim per unit; on any failure release what this batch took"""
        claimed = []
        try:
            for unit in units:
                self.units.assign_to_vendor(unit.id, vendor_id, contract_id)
                claimed.append(unit)
        except Exception:
            self._release(claimed, contract_id)
            raise

    def _release(self, units: List[Unit], contract_id: UUID):
        for unit in units:
            self.units.release(unit.id, contract_id=contract_id)
        if units:
            logger.warning(f"Released {len(units)} units claimed for contract {contract_id} after a failure")
