"""Admin registration for rental units."""

from __future__ import annotations

from django.contrib import admin

from .models import RentalUnit


@admin.register(RentalUnit)
class RentalUnitAdmin(admin.ModelAdmin):
    list_display = (
        "label",
        "unit_type",
        "base_price",
        "is_available",
        "assigned_vendor",
        "current_contract",
        "updated_at",
    )
    list_filter = ("unit_type", "is_available")
    search_fields = ("label", "location", "assigned_vendor__name")
    readonly_fields = (
        "current_contract",
        "assigned_vendor",
        "created_at",
        "updated_at",
    )
