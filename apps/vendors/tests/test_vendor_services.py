"""Database tests for vendor persistence, booking requests and trial tasks."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.vendors import tasks
from apps.vendors.domain.entities import RegistrationStatus
from apps.vendors.models import AuditLogEntry, BookingRequest
from apps.vendors.models import Vendor as VendorModel
from apps.vendors.repository import DjangoVendorRepository
from apps.vendors.services import (
    activate_trial,
    audit_log,
    bulk_trial_operation,
    extend_trial,
    get_trial_policy,
    register_vendor,
    cancel_trial,
    reactivate_vendor,
    reject_pending_booking,
    request_booking,
)
from shared.domain.exceptions import ConcurrentModificationError, NotFoundError, ValidationError

SHELF = [{"unit_type": "standard_shelf", "monthly_base_price": "50.00"}]


class VendorRepositoryTests(TestCase):

    def setUp(self) -> None:
        self.repository = DjangoVendorRepository()
        self.vendor = register_vendor("Hofladen Berger", "berger@example.com")

    def test_round_trip_keeps_trial_state(self) -> None:
        activate_trial(self.vendor.id, actor="admin")

        loaded = self.repository.get(self.vendor.id)

        self.assertEqual(loaded.status, RegistrationStatus.TRIAL_ACTIVE)
        self.assertEqual(loaded.trial_end - loaded.trial_start, timedelta(days=30))
        self.assertTrue(loaded.is_publicly_visible)
        self.assertEqual(loaded.version, 1)

    def test_stale_save_is_rejected(self) -> None:
        first = self.repository.get(self.vendor.id)
        second = self.repository.get(self.vendor.id)
        first.activate_trial(timezone.now(), get_trial_policy())
        self.repository.save(first)

        second.cancel("duplicate account", timezone.now())
        with self.assertRaises(ConcurrentModificationError):
            self.repository.save(second)

        model = VendorModel.objects.get(pk=self.vendor.id)
        self.assertEqual(model.registration_status, VendorModel.RegistrationStatus.TRIAL_ACTIVE)

    def test_unknown_vendor(self) -> None:
        with self.assertRaises(NotFoundError):
            self.repository.get("00000000-0000-0000-0000-000000000000")


class BookingRequestTests(TestCase):

    def setUp(self) -> None:
        self.vendor = register_vendor("Hofladen Berger", "berger@example.com")

    def test_request_returns_quote_and_stores_pending_row(self) -> None:
        result = request_booking(self.vendor.id, SHELF, duration_months=12, commission_rate=4)

        self.assertEqual(result.quote.discount_rate, Decimal("0.10"))
        row = BookingRequest.objects.get(vendor_id=self.vendor.id)
        self.assertEqual(row.status, BookingRequest.Status.PENDING)
        self.assertEqual(row.duration_months, 12)

    def test_new_request_supersedes_pending_one(self) -> None:
        first = request_booking(self.vendor.id, SHELF, duration_months=3, commission_rate=4)
        second = request_booking(self.vendor.id, SHELF, duration_months=6, commission_rate=7)

        self.assertEqual(second.superseded_booking_id, first.booking.id)
        self.assertEqual(
            BookingRequest.objects.get(pk=first.booking.id).status, BookingRequest.Status.CANCELLED
        )
        pending = BookingRequest.objects.filter(vendor_id=self.vendor.id, status=BookingRequest.Status.PENDING)
        self.assertEqual([row.pk for row in pending], [second.booking.id])

    def test_add_ons_need_premium_commission(self) -> None:
        with self.assertRaises(ValidationError):
            request_booking(self.vendor.id, SHELF, duration_months=3, commission_rate=4, add_ons=["storage"])
        self.assertFalse(BookingRequest.objects.exists())

    def test_rejection_closes_request_and_is_audited(self) -> None:
        request_booking(self.vendor.id, SHELF, duration_months=3, commission_rate=4)

        reject_pending_booking(self.vendor.id, "no free cooled shelves", actor="admin")

        self.assertEqual(BookingRequest.objects.get().status, BookingRequest.Status.CANCELLED)
        entry = AuditLogEntry.objects.get(action="booking_rejected")
        self.assertEqual(entry.reason, "no free cooled shelves")
        with self.assertRaises(NotFoundError):
            reject_pending_booking(self.vendor.id, "again", actor="admin")


class TrialServiceTests(TestCase):

    def setUp(self) -> None:
        self.vendor = register_vendor("Hofladen Berger", "berger@example.com")
        activate_trial(self.vendor.id, actor="admin")

    def test_audit_log_filters(self) -> None:
        extend_trial(self.vendor.id, 5, actor="support", reason="holidays")

        self.assertEqual([r.action for r in audit_log(vendor_id=self.vendor.id)], ["trial_extended", "trial_activated"])
        self.assertEqual([r.action for r in audit_log(actor="support")], ["trial_extended"])
        self.assertEqual(audit_log(action="trial_extended")[0].details["extension_days"], 5)

    def test_audit_entries_are_append_only(self) -> None:
        entry = AuditLogEntry.objects.get(action="trial_activated")

        with self.assertRaises(PermissionError):
            entry.save()
        with self.assertRaises(PermissionError):
            entry.delete()

    def test_cancel_then_reactivate_restores_trial(self) -> None:
        cancel_trial(self.vendor.id, "paused by vendor", actor="admin")
        result = reactivate_vendor(self.vendor.id, actor="admin", reason="resumed")

        self.assertEqual(result.status, RegistrationStatus.TRIAL_ACTIVE.value)
        model = VendorModel.objects.get(pk=self.vendor.id)
        self.assertEqual(model.status_before_cancellation, "")
        self.assertTrue(model.is_publicly_visible)

    def test_bulk_expire_writes_summary_entry(self) -> None:
        result = bulk_trial_operation([self.vendor.id], "expire", {"reason": "season over"}, actor="admin")

        self.assertEqual(result.success_count, 1)
        self.assertEqual(
            VendorModel.objects.get(pk=self.vendor.id).registration_status,
            VendorModel.RegistrationStatus.TRIAL_EXPIRED,
        )
        self.assertTrue(AuditLogEntry.objects.filter(action="bulk_expire").exists())

    def test_expiry_task_moves_lapsed_trials(self) -> None:
        VendorModel.objects.filter(pk=self.vendor.id).update(
            trial_end_date=timezone.now() - timedelta(minutes=5)
        )

        self.assertEqual(tasks.expire_trials(), {"expired": 1, "skipped": 0})
        self.assertEqual(tasks.expire_trials(), {"expired": 0, "skipped": 0})

    def test_warning_task_records_sent_threshold(self) -> None:
        VendorModel.objects.filter(pk=self.vendor.id).update(
            trial_end_date=timezone.now() + timedelta(days=2, hours=12)
        )

        self.assertEqual(tasks.send_trial_expiration_warnings(), {"reminded": 1, "skipped": 0})
        self.assertEqual(VendorModel.objects.get(pk=self.vendor.id).reminders_sent, [3, 7])

    def test_opening_task_activates_preregistered_vendors(self) -> None:
        newcomer = register_vendor("Imkerei Sommer", "sommer@example.com")

        self.assertEqual(tasks.activate_trials_on_opening(), {"activated": 1, "skipped": 0})
        self.assertEqual(
            VendorModel.objects.get(pk=newcomer.id).registration_status,
            VendorModel.RegistrationStatus.TRIAL_ACTIVE,
        )
