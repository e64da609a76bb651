"""Integration tests for booking confirmation against the database."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone

from apps.contracts.models import Contract, ContractLine
from apps.contracts.services import (
    cancel_trial_booking,
    confirm_booking,
    contracts_for_vendor,
    find_available_units,
    find_available_units_for_display,
    is_unit_available,
)
from apps.contracts.tasks import activate_due_contracts, end_finished_contracts
from apps.notifications.models import OutboundEvent
from apps.units.domain.entities import UnitSpec
from apps.units.models import RentalUnit
from apps.units.repository import DjangoUnitRegistry
from apps.vendors.models import AuditLogEntry, BookingRequest
from apps.vendors.models import Vendor as VendorModel
from apps.vendors.services import register_vendor, request_booking
from shared.domain.exceptions import ConflictError, StateError


class ConfirmBookingServiceTests(TestCase):
    """Covers confirmation, conflicts, overrides and the contract sweeps."""

    def setUp(self) -> None:
        cache.clear()
        registry = DjangoUnitRegistry()
        self.shelf = registry.create_unit(
            UnitSpec(label="R-01", unit_type="standard_shelf", base_price=Decimal("50.00"))
        )
        self.cooler = registry.create_unit(
            UnitSpec(label="K-01", unit_type="cooled_shelf", base_price=Decimal("70.00"))
        )
        self.vendor = register_vendor("Hofladen Berger", "berger@example.com")
        request_booking(
            self.vendor.id,
            [
                {"unit_type": "standard_shelf", "monthly_base_price": "50.00"},
                {"unit_type": "cooled_shelf", "monthly_base_price": "70.00"},
            ],
            duration_months=6,
            commission_rate=7,
        )

    def _request(self, vendor, unit_type: str = "standard_shelf") -> None:
        request_booking(
            vendor.id,
            [{"unit_type": unit_type, "monthly_base_price": "50.00"}],
            duration_months=3,
            commission_rate=4,
        )

    def test_confirmation_persists_contract_lines_and_claims(self) -> None:
        result = confirm_booking(self.vendor.id, [self.shelf.id, self.cooler.id], actor="admin")

        contract = Contract.objects.get(pk=result.contract_id)
        self.assertEqual(contract.status, Contract.Status.SCHEDULED)
        self.assertEqual(contract.duration_months, 6)
        self.assertTrue(contract.is_trial_booking)
        self.assertEqual(contract.total_monthly_price, Decimal("114"))
        self.assertEqual(contract.price_breakdown["total_for_duration"], "684.00")
        self.assertEqual(
            list(contract.lines.order_by("position").values_list("unit__label", flat=True)),
            ["R-01", "K-01"],
        )
        for unit in RentalUnit.objects.all():
            self.assertFalse(unit.is_available)
            self.assertEqual(unit.current_contract_id, contract.id)
            self.assertEqual(unit.assigned_vendor_id, self.vendor.id)

        booking = BookingRequest.objects.get(vendor_id=self.vendor.id)
        self.assertEqual(booking.status, BookingRequest.Status.COMPLETED)
        self.assertEqual(booking.contract_id, contract.id)
        vendor = VendorModel.objects.get(pk=self.vendor.id)
        self.assertEqual(vendor.registration_status, VendorModel.RegistrationStatus.TRIAL_ACTIVE)
        self.assertTrue(
            AuditLogEntry.objects.filter(action="booking_confirmed", vendor_id=self.vendor.id).exists()
        )
        self.assertEqual([c.id for c in contracts_for_vendor(self.vendor.id)], [contract.id])

    def test_second_confirmation_of_same_request_fails(self) -> None:
        confirm_booking(self.vendor.id, [self.shelf.id, self.cooler.id])

        with self.assertRaises(StateError):
            confirm_booking(self.vendor.id, [self.shelf.id, self.cooler.id])

        self.assertEqual(Contract.objects.count(), 1)

    def test_conflict_rolls_back_everything(self) -> None:
        rival = register_vendor("Imkerei Sommer", "sommer@example.com")
        self._request(rival)
        confirm_booking(rival.id, [self.shelf.id])
        units_before = list(RentalUnit.objects.order_by("label").values())

        with self.assertRaises(ConflictError) as ctx:
            confirm_booking(self.vendor.id, [self.shelf.id, self.cooler.id])

        self.assertEqual(ctx.exception.unit_ids, [self.shelf.id])
        self.assertEqual(Contract.objects.count(), 1)
        self.assertEqual(ContractLine.objects.count(), 1)
        self.assertEqual(list(RentalUnit.objects.order_by("label").values()), units_before)
        self.assertEqual(
            BookingRequest.objects.get(vendor_id=self.vendor.id).status, BookingRequest.Status.PENDING
        )

    def test_price_override_is_stored_on_line_and_audited(self) -> None:
        result = confirm_booking(
            self.vendor.id,
            [self.shelf.id, self.cooler.id],
            price_overrides={str(self.cooler.id): "65.50"},
            actor="admin",
        )

        line = ContractLine.objects.get(contract_id=result.contract_id, unit_id=self.cooler.id)
        self.assertEqual(line.monthly_price, Decimal("65.50"))
        entry = AuditLogEntry.objects.get(action="price_override")
        self.assertEqual(entry.details["catalog_price"], "70.00")
        self.assertEqual(entry.actor, "admin")

    def test_availability_queries_follow_contract_window(self) -> None:
        result = confirm_booking(self.vendor.id, [self.shelf.id])
        contract = Contract.objects.get(pk=result.contract_id)

        self.assertFalse(is_unit_available(self.shelf.id, timezone.now()))
        self.assertTrue(is_unit_available(self.shelf.id, contract.window_end))
        self.assertTrue(
            is_unit_available(self.shelf.id, contract.window_end, contract.window_end + timedelta(days=30))
        )
        free = find_available_units(window_start=timezone.now(), window_end=timezone.now() + timedelta(days=1))
        self.assertEqual([unit.label for unit in free], ["K-01"])

    def test_display_listing_is_invalidated_after_confirmation(self) -> None:
        start = timezone.now()
        before = find_available_units_for_display(window_start=start)
        self.assertEqual(len(before), 2)

        with self.captureOnCommitCallbacks(execute=True):
            confirm_booking(self.vendor.id, [self.shelf.id])

        after = find_available_units_for_display(window_start=start)
        self.assertEqual([unit.label for unit in after], ["K-01"])

    def test_confirmation_notifies_vendor_after_commit(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            confirm_booking(self.vendor.id, [self.shelf.id, self.cooler.id])

        confirmed = OutboundEvent.objects.get(event_type="ContractConfirmed")
        self.assertEqual(confirmed.status, OutboundEvent.Status.SENT)
        self.assertEqual(confirmed.recipient, "berger@example.com")
        subjects = [message.subject for message in mail.outbox]
        self.assertIn("Your booking is confirmed", subjects)
        self.assertIn("Your trial month has started", subjects)

    def test_contract_sweeps_activate_end_and_release(self) -> None:
        result = confirm_booking(self.vendor.id, [self.shelf.id])

        self.assertEqual(activate_due_contracts(), {"activated": 1, "failed": 0})
        Contract.objects.filter(pk=result.contract_id).update(
            window_end=timezone.now() - timedelta(seconds=1),
            window_start=timezone.now() - timedelta(days=1),
            scheduled_start=timezone.now() - timedelta(days=1),
        )
        self.assertEqual(end_finished_contracts(), {"ended": 1, "failed": 0})

        self.assertEqual(Contract.objects.get(pk=result.contract_id).status, Contract.Status.ENDED)
        shelf = RentalUnit.objects.get(pk=self.shelf.id)
        self.assertTrue(shelf.is_available)
        self.assertIsNone(shelf.current_contract_id)

    def test_trial_booking_can_be_cancelled_before_payment(self) -> None:
        result = confirm_booking(self.vendor.id, [self.shelf.id])

        cancel_trial_booking(result.contract_id, "changed plans", actor="berger@example.com")

        contract = Contract.objects.get(pk=result.contract_id)
        self.assertEqual(contract.status, Contract.Status.CANCELLED_DURING_TRIAL)
        self.assertEqual(contract.cancellation_reason, "changed plans")
        self.assertTrue(RentalUnit.objects.get(pk=self.shelf.id).is_available)
        self.assertTrue(AuditLogEntry.objects.filter(action="trial_booking_cancelled").exists())
