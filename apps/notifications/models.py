"""Outbound notification model.

Every domain event that should reach a person is stored here after the
originating transaction commits. Delivery runs in Celery; a failed send is
retried with exponential backoff and dead-lettered after the last attempt,
never by re-running the business operation that produced the event.
"""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class OutboundEvent(models.Model):
    """A domain event queued for delivery to its recipient."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SENT = "sent", _("Sent")
        DEAD = "dead", _("Dead letter")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_id = models.UUIDField(unique=True)
    event_type = models.CharField(max_length=64)
    aggregate_id = models.UUIDField(null=True, blank=True)
    recipient = models.EmailField(blank=True)
    payload = models.JSONField(default=dict)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveSmallIntegerField(default=0)
    next_attempt_at = models.DateTimeField()
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["next_attempt_at"]
        indexes = [
            models.Index(fields=["status", "next_attempt_at"], name="notificatio_status_2e8b61_idx"),
            models.Index(fields=["event_type", "created_at"], name="notificatio_event_t_7c4f90_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} to {self.recipient or '-'} ({self.status})"
