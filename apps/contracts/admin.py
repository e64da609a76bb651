"""Admin registration for contracts."""

from __future__ import annotations

from django.contrib import admin, messages

from shared.domain.exceptions import DomainError

from .models import Contract, ContractLine
from .services import cancel_trial_booking


class ContractLineInline(admin.TabularInline):
    model = ContractLine
    extra = 0
    can_delete = False
    readonly_fields = ("unit", "position", "monthly_price", "start", "end")


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "vendor",
        "status",
        "scheduled_start",
        "window_end",
        "duration_months",
        "total_monthly_price",
        "is_trial_booking",
    )
    list_filter = ("status", "is_trial_booking")
    search_fields = ("vendor__name", "vendor__email", "lines__unit__label")
    inlines = [ContractLineInline]
    # Contracts change only through the confirmation and lifecycle services.
    readonly_fields = (
        "vendor",
        "status",
        "scheduled_start",
        "duration_months",
        "discount_rate",
        "commission_rate",
        "total_monthly_price",
        "add_ons",
        "price_breakdown",
        "is_trial_booking",
        "trial_vendor",
        "payment_liable_from",
        "window_start",
        "window_end",
        "cancelled_at",
        "cancellation_reason",
        "created_at",
        "updated_at",
    )
    actions = ("cancel_trial_bookings",)

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Cancel trial booking")
    def cancel_trial_bookings(self, request, queryset):
        cancelled = 0
        for contract_id in queryset.values_list("pk", flat=True):
            try:
                cancel_trial_booking(contract_id, "cancelled in admin", actor=request.user.get_username())
                cancelled += 1
            except DomainError as e:
                self.message_user(request, str(e), messages.WARNING)
        if cancelled:
            self.message_user(request, f"{cancelled} trial bookings cancelled", messages.SUCCESS)
