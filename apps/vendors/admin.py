"""Admin registration for vendors, booking requests and the audit log."""

from __future__ import annotations

from django.contrib import admin, messages

from .models import AuditLogEntry, BookingRequest, Vendor
from .services import bulk_trial_operation, convert_trial


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "email",
        "registration_status",
        "trial_start_date",
        "trial_end_date",
        "is_publicly_visible",
        "updated_at",
    )
    list_filter = ("registration_status", "is_publicly_visible")
    search_fields = ("name", "email")
    # Lifecycle fields only change through the trial manager.
    readonly_fields = (
        "registration_status",
        "trial_start_date",
        "trial_end_date",
        "is_publicly_visible",
        "status_before_cancellation",
        "cancellation_reason",
        "cancelled_at",
        "converted_at",
        "reminders_sent",
        "version",
        "created_at",
        "updated_at",
    )
    actions = ("extend_trials_by_week", "reset_trial_reminders", "convert_trials")

    def _report(self, request, result):
        self.message_user(
            request,
            f"{result.success_count} succeeded, {result.failure_count} failed",
            messages.SUCCESS if not result.failure_count else messages.WARNING,
        )

    @admin.action(description="Extend trial by 7 days")
    def extend_trials_by_week(self, request, queryset):
        result = bulk_trial_operation(
            list(queryset.values_list("pk", flat=True)),
            "extend",
            {"days": 7, "reason": "admin bulk action"},
            actor=request.user.get_username(),
        )
        self._report(request, result)

    @admin.action(description="Reset trial reminders")
    def reset_trial_reminders(self, request, queryset):
        result = bulk_trial_operation(
            list(queryset.values_list("pk", flat=True)),
            "reset_reminders",
            actor=request.user.get_username(),
        )
        self._report(request, result)

    @admin.action(description="Convert to paying vendor")
    def convert_trials(self, request, queryset):
        for vendor_id in queryset.values_list("pk", flat=True):
            convert_trial(vendor_id, actor=request.user.get_username())


@admin.register(BookingRequest)
class BookingRequestAdmin(admin.ModelAdmin):
    list_display = ("vendor", "status", "duration_months", "commission_rate", "created_at")
    list_filter = ("status",)
    search_fields = ("vendor__name", "vendor__email")
    readonly_fields = ("contract", "created_at", "updated_at")


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "action", "actor", "vendor", "reason")
    list_filter = ("action",)
    search_fields = ("actor", "vendor__name", "reason")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
