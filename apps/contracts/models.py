"""Rental contract models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Contract(models.Model):
    """Binding allocation of one or more rental units to a vendor (Vertrag)."""

    class Status(models.TextChoices):
        SCHEDULED = "scheduled", _("Scheduled")
        ACTIVE = "active", _("Active")
        CANCELLED_DURING_TRIAL = "cancelled_during_trial", _("Cancelled during trial")
        ENDED = "ended", _("Ended")

    BLOCKING_STATUSES = (Status.SCHEDULED, Status.ACTIVE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.SCHEDULED,
    )
    scheduled_start = models.DateTimeField()
    duration_months = models.PositiveSmallIntegerField()
    discount_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal("0"))
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    total_monthly_price = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text=_("Unrounded monthly total at the time of confirmation."),
    )
    add_ons = models.JSONField(default=list, blank=True)
    price_breakdown = models.JSONField(default=dict, blank=True)
    is_trial_booking = models.BooleanField(default=False)
    trial_vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="trial_contracts",
    )
    payment_liable_from = models.DateTimeField(null=True, blank=True)
    # Availability impact window [window_start, window_end)
    window_start = models.DateTimeField()
    window_end = models.DateTimeField()
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "window_start", "window_end"], name="contracts_c_status_9a1e3b_idx"),
            models.Index(fields=["vendor", "status"], name="contracts_c_vendor__5d20c8_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(window_start__lt=F("window_end")),
                name="contract_window_start_before_end",
            ),
        ]

    def __str__(self) -> str:
        return f"Contract {self.id} ({self.status})"


class ContractLine(models.Model):
    """Service line item: a unit rented under a contract at a fixed monthly price."""

    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    unit = models.ForeignKey(
        "units.RentalUnit",
        on_delete=models.PROTECT,
        related_name="contract_lines",
    )
    position = models.PositiveSmallIntegerField(default=0)
    monthly_price = models.DecimalField(max_digits=10, decimal_places=2)
    start = models.DateTimeField()
    end = models.DateTimeField()

    class Meta:
        ordering = ["contract", "position"]
        constraints = [
            models.UniqueConstraint(fields=["contract", "unit"], name="unique_unit_per_contract"),
        ]

    def __str__(self) -> str:
        return f"{self.unit_id} @ {self.monthly_price}"
