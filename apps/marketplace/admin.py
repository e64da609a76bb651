"""Admin registration for the marketplace opening."""

from __future__ import annotations

from django.contrib import admin

from .models import MarketplaceOpening


@admin.register(MarketplaceOpening)
class MarketplaceOpeningAdmin(admin.ModelAdmin):
    list_display = ("enabled", "opening_at", "modified_by", "updated_at")
    readonly_fields = ("updated_at",)

    def has_add_permission(self, request):
        return not MarketplaceOpening.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
