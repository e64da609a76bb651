"""Celery tasks for the notification outbox."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import deliver, due_outbound_ids

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_outbound_event")
def deliver_outbound_event(outbound_id: str) -> str:
    """Deliver one queued notification; failures are rescheduled on the row."""
    return deliver(outbound_id)


@shared_task(name="notifications.retry_due_outbound_events")
def retry_due_outbound_events() -> dict[str, int]:
    """
    Retry every pending notification whose next attempt is due.

    Returns:
        dict: {"sent": ..., "pending": ..., "dead": ...}
    """
    counts = {"sent": 0, "pending": 0, "dead": 0}
    for outbound_id in due_outbound_ids():
        try:
            status = deliver(outbound_id)
        except Exception as e:
            logger.error(f"Error delivering notification {outbound_id}: {e}", exc_info=True)
            continue
        if status in counts:
            counts[status] += 1

    if counts["sent"] or counts["dead"]:
        logger.info(f"Outbox retry: {counts}")
    return counts
