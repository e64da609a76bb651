"""Vendor and audit log repositories.

Vendor saves are optimistic: the row is only written while its ``version``
still matches the version the aggregate was loaded with.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.pricing import AddOnService, UnitSelection
from shared.domain.exceptions import ConcurrentModificationError, NotFoundError
from shared.infrastructure.db import lock_queryset_if_possible

from .domain.audit import AuditLog, AuditRecord
from .domain.entities import (
    NO_PENDING_BOOKING,
    PendingBooking,
    PendingBookingStatus,
    RegistrationStatus,
    Vendor,
)
from .models import AuditLogEntry, BookingRequest
from .models import Vendor as VendorModel

logger = logging.getLogger(__name__)


class VendorRepository(ABC):

    @abstractmethod
    def add(self, vendor: Vendor) -> Vendor:
        raise NotImplementedError

    @abstractmethod
    def get(self, vendor_id: UUID, *, lock: bool = False) -> Vendor:
        raise NotImplementedError

    @abstractmethod
    def save(self, vendor: Vendor) -> Vendor:
        """Raises ConcurrentModificationError when the stored version moved on."""
        raise NotImplementedError

    @abstractmethod
    def ids_with_status(self, status: RegistrationStatus) -> List[UUID]:
        raise NotImplementedError

    @abstractmethod
    def trial_ids_ending_before(self, moment: datetime) -> List[UUID]:
        """trial_active vendors whose trial_end <= moment"""
        raise NotImplementedError

    @abstractmethod
    def trial_ids_ending_between(self, start: datetime, end: datetime) -> List[UUID]:
        """trial_active vendors with start < trial_end <= end"""
        raise NotImplementedError


# ===== Mapping =====

def selections_to_json(selections) -> list:
    return [
        {
            "unit_type": selection.unit_type,
            "monthly_base_price": str(selection.monthly_base_price),
            "count": selection.count,
        }
        for selection in selections
    ]


def selections_from_json(data) -> tuple:
    return tuple(
        UnitSelection(
            unit_type=item["unit_type"],
            monthly_base_price=Decimal(str(item["monthly_base_price"])),
            count=int(item.get("count", 1)),
        )
        for item in data or []
    )


def booking_from_model(model: BookingRequest) -> PendingBooking:
    return PendingBooking(
        id=model.id,
        selections=selections_from_json(model.selections),
        duration_months=model.duration_months,
        commission_rate=model.commission_rate,
        add_ons=tuple(AddOnService(name) for name in model.add_ons or []),
        comments=model.comments,
        created_at=model.created_at,
        status=PendingBookingStatus(model.status),
        contract_id=model.contract_id,
        resolution_note=model.resolution_note,
    )


def vendor_from_model(model: VendorModel, booking: BookingRequest | None) -> Vendor:
    return Vendor(
        id=model.id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        version=model.version,
        name=model.name,
        email=model.email,
        status=RegistrationStatus(model.registration_status),
        trial_start=model.trial_start_date,
        trial_end=model.trial_end_date,
        is_publicly_visible=model.is_publicly_visible,
        status_before_cancellation=(
            RegistrationStatus(model.status_before_cancellation)
            if model.status_before_cancellation else None
        ),
        cancellation_reason=model.cancellation_reason,
        cancelled_at=model.cancelled_at,
        converted_at=model.converted_at,
        reminders_sent=set(model.reminders_sent or []),
        pending_booking=booking_from_model(booking) if booking else NO_PENDING_BOOKING,
    )


def vendor_fields(vendor: Vendor) -> dict:
    return {
        "name": vendor.name,
        "email": vendor.email,
        "registration_status": vendor.status.value,
        "trial_start_date": vendor.trial_start,
        "trial_end_date": vendor.trial_end,
        "is_publicly_visible": vendor.is_publicly_visible,
        "status_before_cancellation": (
            vendor.status_before_cancellation.value if vendor.status_before_cancellation else ""
        ),
        "cancellation_reason": vendor.cancellation_reason,
        "cancelled_at": vendor.cancelled_at,
        "converted_at": vendor.converted_at,
        "reminders_sent": sorted(vendor.reminders_sent),
    }


class DjangoVendorRepository(VendorRepository):

    def add(self, vendor: Vendor) -> Vendor:
        VendorModel.objects.create(id=vendor.id, version=vendor.version, **vendor_fields(vendor))
        self._save_bookings(vendor)
        logger.info(f"Registered vendor {vendor.name} ({vendor.id})")
        return vendor

    def get(self, vendor_id: UUID, *, lock: bool = False) -> Vendor:
        queryset = VendorModel.objects.filter(pk=vendor_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        try:
            model = queryset.get()
        except (VendorModel.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Vendor {vendor_id} not found") from None

        # The current request is the newest one that was not cancelled.
        booking = (
            BookingRequest.objects.filter(vendor_id=model.pk)
            .exclude(status=BookingRequest.Status.CANCELLED)
            .order_by("-created_at")
            .first()
        )
        return vendor_from_model(model, booking)

    def save(self, vendor: Vendor) -> Vendor:
        updated = VendorModel.objects.filter(pk=vendor.id, version=vendor.version).update(
            version=F("version") + 1,
            updated_at=timezone.now(),
            **vendor_fields(vendor),
        )
        if not updated:
            if not VendorModel.objects.filter(pk=vendor.id).exists():
                raise NotFoundError(f"Vendor {vendor.id} not found")
            raise ConcurrentModificationError(
                f"Vendor {vendor.id} was modified concurrently (expected version {vendor.version})"
            )
        vendor.version += 1
        self._save_bookings(vendor)
        return vendor

    def _save_bookings(self, vendor: Vendor):
        # Close superseded requests first: only one pending row per vendor may exist.
        for booking in vendor.closed_bookings:
            BookingRequest.objects.filter(pk=booking.id).update(
                status=booking.status.value,
                contract_id=booking.contract_id,
                resolution_note=booking.resolution_note,
                updated_at=timezone.now(),
            )
        vendor.closed_bookings.clear()

        booking = vendor.pending_booking
        if isinstance(booking, PendingBooking) and booking.is_pending:
            BookingRequest.objects.update_or_create(
                pk=booking.id,
                defaults={
                    "vendor_id": vendor.id,
                    "selections": selections_to_json(booking.selections),
                    "add_ons": [add_on.value for add_on in booking.add_ons],
                    "duration_months": booking.duration_months,
                    "commission_rate": booking.commission_rate,
                    "comments": booking.comments,
                    "status": booking.status.value,
                    "created_at": booking.created_at,
                },
            )

    def ids_with_status(self, status: RegistrationStatus) -> List[UUID]:
        return list(
            VendorModel.objects.filter(registration_status=status.value)
            .order_by("created_at")
            .values_list("pk", flat=True)
        )

    def trial_ids_ending_before(self, moment: datetime) -> List[UUID]:
        return list(
            VendorModel.objects.filter(
                registration_status=RegistrationStatus.TRIAL_ACTIVE.value,
                trial_end_date__lte=moment,
            )
            .order_by("trial_end_date")
            .values_list("pk", flat=True)
        )

    def trial_ids_ending_between(self, start: datetime, end: datetime) -> List[UUID]:
        return list(
            VendorModel.objects.filter(
                registration_status=RegistrationStatus.TRIAL_ACTIVE.value,
                trial_end_date__gt=start,
                trial_end_date__lte=end,
            )
            .order_by("trial_end_date")
            .values_list("pk", flat=True)
        )


class DjangoAuditLog(AuditLog):

    def append(self, record: AuditRecord) -> AuditRecord:
        entry = AuditLogEntry.log(
            actor=record.actor,
            action=record.action,
            vendor_id=record.vendor_id,
            reason=record.reason,
            details=record.details,
        )
        return self._to_record(entry)

    def query(
        self,
        *,
        vendor_id: UUID | None = None,
        action: str | None = None,
        actor: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int = 100,
    ) -> List[AuditRecord]:
        queryset = AuditLogEntry.objects.all()
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        if action:
            queryset = queryset.filter(action=action)
        if actor:
            queryset = queryset.filter(actor=actor)
        if since:
            queryset = queryset.filter(timestamp__gte=since)
        if until:
            queryset = queryset.filter(timestamp__lte=until)
        return [self._to_record(entry) for entry in queryset.order_by("-timestamp", "-id")[:limit]]

    @staticmethod
    def _to_record(entry: AuditLogEntry) -> AuditRecord:
        return AuditRecord(
            id=entry.pk,
            action=entry.action,
            actor=entry.actor,
            vendor_id=entry.vendor_id,
            reason=entry.reason,
            details=entry.details,
            timestamp=entry.timestamp,
        )
