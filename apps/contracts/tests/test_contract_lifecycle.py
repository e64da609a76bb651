"""Tests for availability windows, contract scheduling and status sweeps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from apps.contracts.application.confirm_booking import ConfirmBookingCommand
from apps.contracts.availability import ContractAvailabilityIndex
from apps.contracts.domain.entities import ContractStatus
from apps.contracts.domain.scheduling import schedule_contract
from apps.contracts.tests.fakes import make_world
from apps.marketplace.domain import ALWAYS_OPEN, OpeningSchedule
from apps.pricing import UnitSelection
from apps.units.domain.entities import ConflictReason
from apps.vendors.domain.entities import RegistrationStatus
from shared.domain.exceptions import StateError, ValidationError
from shared.domain.value_objects import TimeWindow

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
SHELF = (UnitSelection(unit_type="standard_shelf", monthly_base_price=Decimal("50")),)


@pytest.fixture
def world():
    return make_world(NOW)


def _book(world, unit, status=RegistrationStatus.ACTIVE, name="Hofladen Berger", **kwargs):
    vendor = world.add_vendor(name, status=status, selections=SHELF, **kwargs)
    return world.confirm.handle(ConfirmBookingCommand(vendor_id=vendor.id, unit_ids=(unit.id,))).contract


# ===== Scheduling =====

def test_non_trial_schedule_pays_from_start():
    schedule = schedule_contract(
        now=NOW, opening=ALWAYS_OPEN, duration_months=3, trial_applies=False, trial_days=30
    )

    assert schedule.start == NOW
    assert schedule.payment_liable_from == NOW
    assert schedule.window_end == NOW + relativedelta(months=3)
    assert not schedule.is_trial_booking


def test_trial_schedule_adds_trial_days_before_paid_months():
    schedule = schedule_contract(
        now=NOW, opening=ALWAYS_OPEN, duration_months=1, trial_applies=True, trial_days=30
    )

    assert schedule.payment_liable_from == NOW + timedelta(days=30)
    assert schedule.window_end == NOW + timedelta(days=30) + relativedelta(months=1)


def test_month_arithmetic_clamps_to_month_end():
    start = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)
    schedule = schedule_contract(
        now=start, opening=ALWAYS_OPEN, duration_months=1, trial_applies=False, trial_days=30
    )

    assert schedule.window_end == datetime(2026, 2, 28, 9, 0, tzinfo=timezone.utc)


def test_closed_marketplace_starts_at_opening():
    opening = OpeningSchedule(enabled=True, opening_at=NOW + timedelta(days=5))
    schedule = schedule_contract(
        now=NOW, opening=opening, duration_months=1, trial_applies=False, trial_days=30
    )

    assert schedule.start == NOW + timedelta(days=5)


# ===== Availability =====

def test_adjacent_windows_do_not_conflict(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit)
    index = world.confirm.availability

    assert not index.is_available(unit.id, NOW + timedelta(days=10), NOW + timedelta(days=20))
    assert index.is_available(unit.id, contract.window_end, contract.window_end + timedelta(days=30))
    assert index.is_available(unit.id, NOW - timedelta(days=30), NOW)


def test_instant_query_uses_containment(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit)
    index = world.confirm.availability

    assert not index.is_available(unit.id, NOW)
    assert not index.is_available(unit.id, contract.window_end - timedelta(seconds=1))
    assert index.is_available(unit.id, contract.window_end)


def test_cancelled_contracts_do_not_block(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit, status=RegistrationStatus.PREREGISTERED)

    world.lifecycle.cancel_trial_booking(contract.id, "changed plans")

    assert world.confirm.availability.is_available(unit.id, NOW, NOW + timedelta(days=10))


def test_find_available_units_filters_type_and_occupied(world):
    free_shelf = world.add_unit("R-02", 50)
    taken_shelf = world.add_unit("R-01", 50)
    world.add_unit("K-01", 70, "cooled_shelf")
    _book(world, taken_shelf)

    found = world.confirm.availability.find_available_units(
        "standard_shelf", NOW, NOW + timedelta(days=30)
    )

    assert [unit.id for unit in found] == [free_shelf.id]


@pytest.mark.parametrize(
    "start, end",
    [
        (NOW, NOW - timedelta(days=1)),
        (NOW, NOW),
    ],
)
def test_malformed_window_is_a_validation_error(world, start, end):
    unit = world.add_unit("R-01", 50)
    index = world.confirm.availability

    with pytest.raises(ValidationError):
        index.is_available(unit.id, start, end)
    with pytest.raises(ValidationError):
        index.find_available_units(None, start, end)


def test_window_start_is_required_without_a_clock(world):
    index = ContractAvailabilityIndex(units=world.units, contracts=world.contracts)

    with pytest.raises(ValidationError, match="window_start is required"):
        index.find_available_units("standard_shelf")


def test_check_units_reports_overlapping_contract(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit)
    # Unit record freed by hand while the contract window still runs
    world.units.release(unit.id)
    fresh = world.units.get_unit(unit.id)

    conflicts = world.confirm.availability.check_units([fresh], TimeWindow(NOW, NOW + timedelta(days=1)))

    assert len(conflicts) == 1
    assert conflicts[0].reason == ConflictReason.OVERLAPPING_CONTRACT
    assert conflicts[0].contract_id == contract.id


# ===== Lifecycle sweeps =====

def test_contracts_activate_once_start_is_reached(world):
    unit = world.add_unit("R-01", 50)
    vendor = world.add_vendor(selections=SHELF)
    start = NOW + timedelta(days=3)
    contract = world.confirm.handle(
        ConfirmBookingCommand(vendor_id=vendor.id, unit_ids=(unit.id,), scheduled_start=start)
    ).contract

    assert world.lifecycle.activate_due_contracts() == {"activated": 0, "failed": 0}

    world.clock.now = start
    assert world.lifecycle.activate_due_contracts() == {"activated": 1, "failed": 0}
    assert world.contracts.get(contract.id).status == ContractStatus.ACTIVE
    assert world.lifecycle.activate_due_contracts() == {"activated": 0, "failed": 0}


def test_finished_contracts_end_and_release_units(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit)
    world.lifecycle.activate_due_contracts()

    world.clock.now = contract.window_end
    result = world.lifecycle.end_finished_contracts()

    assert result == {"ended": 1, "failed": 0}
    assert world.contracts.get(contract.id).status == ContractStatus.ENDED
    released = world.units.get_unit(unit.id)
    assert released.is_available
    assert released.current_contract_id is None
    assert "ContractEnded" in world.event_types()


def test_trial_booking_cancellation_releases_units_and_is_audited(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit, status=RegistrationStatus.PREREGISTERED)

    cancelled = world.lifecycle.cancel_trial_booking(contract.id, "changed plans", actor="vendor")

    assert cancelled.status == ContractStatus.CANCELLED_DURING_TRIAL
    assert world.units.get_unit(unit.id).is_available
    entry = world.audit.query(action="trial_booking_cancelled")[0]
    assert entry.reason == "changed plans"
    assert entry.details["contract_id"] == str(contract.id)


def test_regular_contract_cannot_be_cancelled_as_trial(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit)

    with pytest.raises(StateError):
        world.lifecycle.cancel_trial_booking(contract.id, "too late")


def test_trial_cancellation_closes_when_payment_starts(world):
    unit = world.add_unit("R-01", 50)
    contract = _book(world, unit, status=RegistrationStatus.PREREGISTERED)

    world.clock.now = contract.payment_liable_from
    with pytest.raises(StateError):
        world.lifecycle.cancel_trial_booking(contract.id, "too late")

    assert not world.units.get_unit(unit.id).is_available
