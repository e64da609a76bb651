"""Admin registration for the notification outbox."""

from __future__ import annotations

from django.contrib import admin
from django.utils import timezone

from .models import OutboundEvent


@admin.register(OutboundEvent)
class OutboundEventAdmin(admin.ModelAdmin):
    list_display = ("event_type", "recipient", "status", "attempts", "next_attempt_at", "sent_at")
    list_filter = ("status", "event_type")
    search_fields = ("recipient", "event_type")
    readonly_fields = (
        "event_id",
        "event_type",
        "aggregate_id",
        "recipient",
        "payload",
        "attempts",
        "sent_at",
        "error_message",
        "created_at",
        "updated_at",
    )
    actions = ("requeue",)

    @admin.action(description="Requeue for delivery")
    def requeue(self, request, queryset):
        updated = queryset.exclude(status=OutboundEvent.Status.SENT).update(
            status=OutboundEvent.Status.PENDING,
            attempts=0,
            next_attempt_at=timezone.now(),
        )
        self.message_user(request, f"{updated} notifications requeued")
