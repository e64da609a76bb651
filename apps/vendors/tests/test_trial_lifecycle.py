"""Tests for the vendor trial state machine and the trial lifecycle manager."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from apps.contracts.tests.fakes import make_world
from apps.marketplace.domain import OpeningSchedule
from apps.vendors.domain.entities import RegistrationStatus, TrialPolicy, Vendor
from shared.domain.exceptions import NotFoundError, StateError, ValidationError

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
POLICY = TrialPolicy()


@pytest.fixture
def world():
    return make_world(NOW)


def _trial_vendor() -> Vendor:
    vendor = Vendor(name="Hofladen Berger", email="berger@example.com")
    vendor.activate_trial(NOW, POLICY)
    vendor.clear_events()
    return vendor


# ===== Vendor aggregate =====

def test_activation_sets_thirty_day_window_and_visibility():
    vendor = Vendor(name="Hofladen Berger", email="berger@example.com")

    assert vendor.activate_trial(NOW, POLICY)

    assert vendor.status == RegistrationStatus.TRIAL_ACTIVE
    assert vendor.trial_end - vendor.trial_start == timedelta(days=30)
    assert vendor.is_publicly_visible
    assert [event.event_type for event in vendor.events] == ["TrialActivated"]
    assert not vendor.activate_trial(NOW, POLICY)


def test_trial_end_tracks_extensions():
    vendor = _trial_vendor()

    vendor.extend_trial(7, NOW, actor="admin")
    vendor.extend_trial(3, NOW, actor="admin")

    assert vendor.trial_end == vendor.trial_start + timedelta(days=30 + 7 + 3)


@pytest.mark.parametrize("days", [0, -1, 1.5, True, "7"])
def test_extension_needs_positive_whole_days(days):
    vendor = _trial_vendor()

    with pytest.raises(ValidationError):
        vendor.extend_trial(days, NOW, actor="admin")


def test_extension_outside_trial_is_rejected():
    vendor = Vendor(name="Hofladen Berger", email="berger@example.com")

    with pytest.raises(StateError):
        vendor.extend_trial(7, NOW, actor="admin")


def test_sweep_expiry_waits_for_end_but_admin_expiry_is_immediate():
    vendor = _trial_vendor()

    assert not vendor.expire_trial(NOW + timedelta(days=29))
    assert vendor.status == RegistrationStatus.TRIAL_ACTIVE

    assert vendor.expire_trial(NOW + timedelta(days=5), force=True)
    assert vendor.status == RegistrationStatus.TRIAL_EXPIRED
    assert vendor.trial_end == NOW + timedelta(days=5)


def test_cancelled_vendor_cannot_convert():
    vendor = _trial_vendor()
    vendor.cancel("fraud", NOW)

    with pytest.raises(StateError):
        vendor.convert(NOW)
    assert not vendor.is_publicly_visible


def test_reactivation_restores_previous_status():
    vendor = _trial_vendor()
    vendor.cancel("paused", NOW)

    vendor.reactivate(NOW + timedelta(days=1))

    assert vendor.status == RegistrationStatus.TRIAL_ACTIVE
    assert vendor.is_publicly_visible
    assert vendor.status_before_cancellation is None


def test_reactivation_after_trial_lapsed_lands_in_expired():
    vendor = _trial_vendor()
    vendor.cancel("paused", NOW)

    vendor.reactivate(NOW + timedelta(days=45))

    assert vendor.status == RegistrationStatus.TRIAL_EXPIRED
    assert not vendor.is_publicly_visible


def test_reminders_fire_once_per_threshold():
    vendor = _trial_vendor()
    seven_days_left = vendor.trial_end - timedelta(days=7)

    assert vendor.due_reminder(seven_days_left - timedelta(days=1), POLICY) is None
    assert vendor.due_reminder(seven_days_left, POLICY) == 7
    vendor.record_reminder(7, seven_days_left, POLICY)
    assert vendor.due_reminder(seven_days_left + timedelta(hours=1), POLICY) is None
    assert vendor.due_reminder(vendor.trial_end - timedelta(days=3), POLICY) == 3


def test_skipped_thresholds_are_covered_by_the_most_urgent_one():
    vendor = _trial_vendor()
    one_day_left = vendor.trial_end - timedelta(hours=20)

    assert vendor.due_reminder(one_day_left, POLICY) == 1
    vendor.record_reminder(1, one_day_left, POLICY)

    assert vendor.reminders_sent == {1, 3, 7}


# ===== Trial lifecycle manager =====

def test_opening_sweep_waits_for_marketplace():
    world = make_world(NOW, opening=OpeningSchedule(enabled=True, opening_at=NOW + timedelta(days=2)))
    vendor = world.add_vendor(status=RegistrationStatus.PREREGISTERED)

    assert world.trials.activate_trials_on_opening() == {"activated": 0, "skipped": 0}
    assert world.vendors.stored(vendor.id).status == RegistrationStatus.PREREGISTERED


def test_opening_sweep_activates_preregistered_vendors(world):
    first = world.add_vendor("Hofladen Berger", status=RegistrationStatus.PREREGISTERED)
    world.add_vendor("Imkerei Sommer", status=RegistrationStatus.ACTIVE)

    assert world.trials.activate_trials_on_opening() == {"activated": 1, "skipped": 0}
    stored = world.vendors.stored(first.id)
    assert stored.status == RegistrationStatus.TRIAL_ACTIVE
    assert stored.trial_end == NOW + timedelta(days=30)
    assert world.event_types() == ["TrialActivated"]


def test_warning_sweep_sends_each_reminder_once(world):
    vendor = world.add_vendor(status=RegistrationStatus.TRIAL_ACTIVE, trial_end=NOW + timedelta(days=6))

    assert world.trials.send_expiration_warnings() == {"reminded": 1, "skipped": 0}
    assert world.trials.send_expiration_warnings() == {"reminded": 0, "skipped": 0}

    expiring = [event for event in world.published if event.event_type == "TrialExpiring"]
    assert len(expiring) == 1
    assert expiring[0].reminder_days == 7
    assert world.vendors.stored(vendor.id).reminders_sent == {7}


def test_expiry_sweep_only_touches_lapsed_trials(world):
    lapsed = world.add_vendor("Hofladen Berger", status=RegistrationStatus.TRIAL_ACTIVE,
                              trial_end=NOW - timedelta(minutes=1))
    running = world.add_vendor("Imkerei Sommer", status=RegistrationStatus.TRIAL_ACTIVE)

    assert world.trials.expire_due_trials() == {"expired": 1, "skipped": 0}
    assert world.vendors.stored(lapsed.id).status == RegistrationStatus.TRIAL_EXPIRED
    assert world.vendors.stored(running.id).status == RegistrationStatus.TRIAL_ACTIVE


def test_extension_is_audited_with_old_and_new_end(world):
    vendor = world.add_vendor(status=RegistrationStatus.TRIAL_ACTIVE)

    result = world.trials.extend_trial(vendor.id, 14, actor="admin", reason="late start")

    assert result.changed
    assert result.trial_end == NOW + timedelta(days=44)
    entry = world.audit.query(action="trial_extended")[0]
    assert entry.actor == "admin"
    assert entry.reason == "late start"
    assert entry.details == {
        "extension_days": 14,
        "previous_end": (NOW + timedelta(days=30)).isoformat(),
        "new_end": (NOW + timedelta(days=44)).isoformat(),
    }


def test_conversion_is_idempotent_without_second_audit_entry(world):
    vendor = world.add_vendor(status=RegistrationStatus.TRIAL_ACTIVE)

    first = world.trials.convert_trial(vendor.id, actor="admin")
    second = world.trials.convert_trial(vendor.id, actor="admin")

    assert first.changed and not second.changed
    assert second.status == RegistrationStatus.ACTIVE.value
    assert world.audit.actions() == ["trial_converted"]
    assert world.event_types() == ["TrialConverted"]


def test_cancel_and_reactivate_are_audited(world):
    vendor = world.add_vendor(status=RegistrationStatus.TRIAL_ACTIVE)

    world.trials.cancel_trial(vendor.id, "no products", actor="admin")
    result = world.trials.reactivate(vendor.id, actor="admin", reason="appeal")

    assert result.status == RegistrationStatus.TRIAL_ACTIVE.value
    assert world.audit.actions() == ["vendor_cancelled", "vendor_reactivated"]
    assert world.audit.query(action="vendor_cancelled")[0].details == {"previous_status": "trial_active"}


def test_admin_action_on_unknown_vendor_raises(world):
    with pytest.raises(NotFoundError):
        world.trials.convert_trial("00000000-0000-0000-0000-000000000000")


def test_bulk_extension_reports_failures_and_continues(world):
    trial = world.add_vendor("Hofladen Berger", status=RegistrationStatus.TRIAL_ACTIVE)
    active = world.add_vendor("Imkerei Sommer", status=RegistrationStatus.ACTIVE)
    missing = "00000000-0000-0000-0000-000000000000"

    result = world.trials.bulk_trial_operation(
        [trial.id, active.id, missing], "extend", {"days": 7, "reason": "holidays"}, actor="admin"
    )

    assert result.success_count == 1
    assert result.failure_count == 2
    assert [error["vendor_id"] for error in result.errors] == [str(active.id), missing]
    assert world.vendors.stored(trial.id).trial_end == NOW + timedelta(days=37)
    bulk = world.audit.query(action="bulk_extend")[0]
    assert bulk.details["success_count"] == 1
    assert bulk.details["failure_count"] == 2
    assert world.audit.actions() == ["trial_extended", "bulk_extend"]


def test_bulk_operation_validates_input(world):
    vendor = world.add_vendor(status=RegistrationStatus.TRIAL_ACTIVE)

    with pytest.raises(ValidationError):
        world.trials.bulk_trial_operation([vendor.id], "delete")
    with pytest.raises(ValidationError):
        world.trials.bulk_trial_operation([vendor.id], "extend", {"days": 0})
    with pytest.raises(ValidationError):
        world.trials.bulk_trial_operation([], "expire")
    assert world.audit.records == []
