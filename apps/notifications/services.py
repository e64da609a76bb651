"""Notification services: outbox enqueueing, rendering and delivery."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.base import DomainEvent
from shared.infrastructure.db import lock_queryset_if_possible

from .models import OutboundEvent

logger = logging.getLogger(__name__)


# ============================================================================
# MESSAGES
# ============================================================================

def _date(value: str | None) -> str:
    if not value:
        return "-"
    return datetime.fromisoformat(value).strftime("%d.%m.%Y")


MESSAGES: dict[str, tuple[str, Callable[[dict], str]]] = {
    "ContractConfirmed": (
        "Your booking is confirmed",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your booking of {', '.join(p.get('unit_labels') or [])} is confirmed.\n"
            f"Start: {_date(p.get('scheduled_start'))}\n"
            f"Duration: {p.get('duration_months')} months\n"
            f"Monthly total: {p.get('monthly_total')} EUR\n"
            f"Payments start on {_date(p.get('payment_liable_from'))}."
            + ("\n\nThis booking falls under your free trial month." if p.get("is_trial_booking") else "")
        ),
    ),
    "TrialActivated": (
        "Your trial month has started",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your trial month runs until {_date(p.get('trial_end'))}."
        ),
    ),
    "TrialExpiring": (
        "Your trial month ends soon",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your trial month ends in {p.get('reminder_days')} day(s), on {_date(p.get('trial_end'))}."
        ),
    ),
    "TrialExpired": (
        "Your trial month has ended",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your trial month ended on {_date(p.get('trial_end'))}."
        ),
    ),
    "TrialExtended": (
        "Your trial month was extended",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your trial month was extended by {p.get('days')} days "
            f"and now ends on {_date(p.get('new_end'))}."
        ),
    ),
    "TrialConverted": (
        "Welcome as a regular vendor",
        lambda p: f"Hello {p.get('vendor_name') or ''},\n\nyour account is now a regular vendor account.",
    ),
    "VendorCancelled": (
        "Your account was cancelled",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your account was cancelled. Reason: {p.get('reason') or '-'}"
        ),
    ),
    "BookingRequestRejected": (
        "Your booking request was declined",
        lambda p: (
            f"Hello {p.get('vendor_name') or ''},\n\n"
            f"your booking request was declined. Reason: {p.get('reason') or '-'}"
        ),
    ),
}


def render_message(event_type: str, payload: dict) -> tuple[str, str]:
    subject, body = MESSAGES[event_type]
    return subject, body(payload)


def is_notifiable(event: DomainEvent) -> bool:
    return event.event_type in MESSAGES


# ============================================================================
# DELIVERY
# ============================================================================

def notify(event_type: str, payload: dict, recipient: str) -> None:
    """Send one message by email. Raises on failure; callers record it."""
    subject, message = render_message(event_type, payload)
    send_mail(
        subject=subject,
        message=message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient],
        fail_silently=False,
    )
    logger.info(f"Email sent to {recipient}: {subject}")


def retry_policy() -> tuple[int, int]:
    config = getattr(settings, "MARKETPLACE", {}).get("NOTIFICATION_RETRY", {})
    return int(config.get("BASE_DELAY_SECONDS", 60)), int(config.get("MAX_ATTEMPTS", 5))


def backoff_delay(attempts: int, base_seconds: int) -> timedelta:
    """base, 2*base, 4*base, ... after the 1st, 2nd, 3rd failed attempt"""
    return timedelta(seconds=base_seconds * 2 ** max(attempts - 1, 0))


def enqueue(event: DomainEvent) -> OutboundEvent | None:
    """Store a notifiable event in the outbox; duplicates by event id are ignored."""
    if not is_notifiable(event):
        return None
    data = event.to_dict()
    outbound, created = OutboundEvent.objects.get_or_create(
        event_id=event.event_id,
        defaults={
            "event_type": event.event_type,
            "aggregate_id": event.aggregate_id,
            "recipient": data["payload"].get("vendor_email") or "",
            "payload": data["payload"],
            "next_attempt_at": timezone.now(),
        },
    )
    if created:
        logger.debug(f"Queued {event.event_type} notification {outbound.id}")
    return outbound


def deliver(outbound_id: UUID, sender: Callable[[str, dict, str], None] = notify) -> str:
    """
    Attempt one delivery of a queued notification.

    Returns the resulting status. Sent and dead-lettered rows are left alone.
    """
    base_seconds, max_attempts = retry_policy()
    with transaction.atomic():
        queryset = lock_queryset_if_possible(OutboundEvent.objects.filter(pk=outbound_id))
        outbound = queryset.first()
        if outbound is None:
            logger.warning(f"Outbound notification {outbound_id} not found")
            return "missing"
        if outbound.status != OutboundEvent.Status.PENDING:
            return outbound.status

        now = timezone.now()
        outbound.attempts += 1
        if not outbound.recipient:
            outbound.status = OutboundEvent.Status.DEAD
            outbound.error_message = "No recipient address"
            logger.warning(f"Notification {outbound.id} ({outbound.event_type}) has no recipient")
        else:
            try:
                sender(outbound.event_type, outbound.payload, outbound.recipient)
            except Exception as e:
                outbound.error_message = str(e)
                if outbound.attempts >= max_attempts:
                    outbound.status = OutboundEvent.Status.DEAD
                    logger.error(
                        f"Notification {outbound.id} dead-lettered after {outbound.attempts} attempts: {e}"
                    )
                else:
                    outbound.next_attempt_at = now + backoff_delay(outbound.attempts, base_seconds)
                    logger.warning(
                        f"Notification {outbound.id} failed (attempt {outbound.attempts}), "
                        f"retrying at {outbound.next_attempt_at.isoformat()}: {e}"
                    )
            else:
                outbound.status = OutboundEvent.Status.SENT
                outbound.sent_at = now
                outbound.error_message = ""
        outbound.save()
        return outbound.status


def due_outbound_ids(limit: int = 50) -> list:
    return list(
        OutboundEvent.objects.filter(
            status=OutboundEvent.Status.PENDING,
            next_attempt_at__lte=timezone.now(),
        )
        .order_by("next_attempt_at")
        .values_list("pk", flat=True)[:limit]
    )
