"""Rental unit models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class RentalUnit(models.Model):
    """A physical sellable space (Mietfach) that can be rented to one vendor at a time."""

    class UnitType(models.TextChoices):
        STANDARD_SHELF = "standard_shelf", _("Standard shelf")
        COOLED_SHELF = "cooled_shelf", _("Cooled shelf")
        FROZEN_SHELF = "frozen_shelf", _("Frozen shelf")
        SALES_TABLE = "sales_table", _("Sales table")
        DISPLAY_WINDOW = "display_window", _("Display window")
        OTHER = "other", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    label = models.CharField(max_length=64, unique=True)
    unit_type = models.CharField(
        max_length=32,
        choices=UnitType.choices,
        default=UnitType.STANDARD_SHELF,
    )
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Catalog monthly price in EUR."),
    )
    is_available = models.BooleanField(default=True)
    current_contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="claimed_units",
    )
    assigned_vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_units",
    )
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["label"]
        indexes = [
            models.Index(fields=["unit_type", "is_available"], name="units_renta_unit_ty_4f7c2a_idx"),
        ]
        verbose_name = _("rental unit")
        verbose_name_plural = _("rental units")

    def __str__(self) -> str:
        return f"{self.label} ({self.get_unit_type_display()})"
