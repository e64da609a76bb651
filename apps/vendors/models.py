"""Vendor, booking request and audit log models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Vendor(models.Model):
    """A seller renting units, with its registration/trial state."""

    class RegistrationStatus(models.TextChoices):
        PREREGISTERED = "preregistered", _("Pre-registered")
        TRIAL_ACTIVE = "trial_active", _("Trial active")
        TRIAL_EXPIRED = "trial_expired", _("Trial expired")
        ACTIVE = "active", _("Active")
        CANCELLED = "cancelled", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vendor_profile",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True)
    registration_status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        default=RegistrationStatus.PREREGISTERED,
    )
    trial_start_date = models.DateTimeField(null=True, blank=True)
    trial_end_date = models.DateTimeField(null=True, blank=True)
    is_publicly_visible = models.BooleanField(default=False)
    status_before_cancellation = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        blank=True,
    )
    cancellation_reason = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    converted_at = models.DateTimeField(null=True, blank=True)
    reminders_sent = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Reminder thresholds (days before trial end) already sent."),
    )
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["registration_status", "trial_end_date"], name="vendors_ven_registr_6b1f0e_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class BookingRequest(models.Model):
    """The vendor's pending booking: requested package awaiting admin confirmation."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.CASCADE,
        related_name="booking_requests",
    )
    selections = models.JSONField(
        default=list,
        help_text=_("List of {unit_type, monthly_base_price, count}."),
    )
    add_ons = models.JSONField(default=list, blank=True)
    duration_months = models.PositiveSmallIntegerField(default=1)
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("4.00"),
    )
    comments = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="booking_requests",
    )
    resolution_note = models.TextField(blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["vendor"],
                condition=Q(status="pending"),
                name="one_pending_booking_per_vendor",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking request {self.id} ({self.status}) for {self.vendor_id}"


class AuditLogEntry(models.Model):
    """Append-only record of admin-initiated lifecycle actions."""

    class Action(models.TextChoices):
        TRIAL_ACTIVATED = "trial_activated", _("Trial activated")
        TRIAL_EXTENDED = "trial_extended", _("Trial extended")
        TRIAL_EXPIRED = "trial_expired", _("Trial expired")
        TRIAL_CONVERTED = "trial_converted", _("Trial converted")
        VENDOR_CANCELLED = "vendor_cancelled", _("Vendor cancelled")
        VENDOR_REACTIVATED = "vendor_reactivated", _("Vendor reactivated")
        REMINDERS_RESET = "reminders_reset", _("Reminders reset")
        BOOKING_CONFIRMED = "booking_confirmed", _("Booking confirmed")
        BOOKING_REJECTED = "booking_rejected", _("Booking rejected")
        PRICE_OVERRIDE = "price_override", _("Price override")
        TRIAL_BOOKING_CANCELLED = "trial_booking_cancelled", _("Trial booking cancelled")
        BULK_EXTEND = "bulk_extend", _("Bulk extend")
        BULK_EXPIRE = "bulk_expire", _("Bulk expire")
        BULK_RESET_REMINDERS = "bulk_reset_reminders", _("Bulk reset reminders")

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    actor = models.CharField(max_length=255)
    action = models.CharField(max_length=40, choices=Action.choices)
    reason = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["vendor", "timestamp"], name="vendors_aud_vendor__3c9a41_idx"),
            models.Index(fields=["action", "timestamp"], name="vendors_aud_action_8e2d57_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.actor} - {self.action} - {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError("Audit log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit log entries are append-only")

    @classmethod
    def log(cls, actor, action, vendor_id=None, reason="", details=None):
        return cls.objects.create(
            vendor_id=vendor_id,
            actor=actor,
            action=action,
            reason=reason or "",
            details=details or {},
        )
