"""Tests for the notification outbox: queueing, delivery, retries and dead-lettering."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from django.core import mail
from django.test import TestCase
from django.utils import timezone

from apps.notifications import services
from apps.notifications.handlers import queue_notification
from apps.notifications.models import OutboundEvent
from apps.notifications.tasks import retry_due_outbound_events
from apps.vendors.domain.events import TrialActivated, VendorReactivated


def _activated(email: str = "berger@example.com") -> TrialActivated:
    vendor_id = uuid4()
    now = timezone.now()
    return TrialActivated(
        aggregate_id=vendor_id,
        vendor_id=vendor_id,
        vendor_name="Hofladen Berger",
        vendor_email=email,
        trial_start=now,
        trial_end=now + timedelta(days=30),
    )


def _failing_sender(event_type, payload, recipient):
    raise ConnectionError("SMTP unavailable")


class OutboxTests(TestCase):

    def test_enqueue_is_idempotent_per_event(self) -> None:
        event = _activated()

        first = services.enqueue(event)
        second = services.enqueue(event)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(OutboundEvent.objects.count(), 1)
        self.assertEqual(first.recipient, "berger@example.com")
        self.assertEqual(first.status, OutboundEvent.Status.PENDING)

    def test_events_without_message_are_not_queued(self) -> None:
        vendor_id = uuid4()
        event = VendorReactivated(aggregate_id=vendor_id, vendor_id=vendor_id, status="active")

        self.assertIsNone(services.enqueue(event))
        self.assertFalse(OutboundEvent.objects.exists())

    def test_successful_delivery_sends_mail(self) -> None:
        outbound = services.enqueue(_activated())

        status = services.deliver(outbound.pk)

        self.assertEqual(status, OutboundEvent.Status.SENT)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["berger@example.com"])
        self.assertEqual(mail.outbox[0].subject, "Your trial month has started")
        outbound.refresh_from_db()
        self.assertIsNotNone(outbound.sent_at)
        self.assertEqual(outbound.attempts, 1)
        # Already sent: nothing happens a second time.
        self.assertEqual(services.deliver(outbound.pk), OutboundEvent.Status.SENT)
        self.assertEqual(len(mail.outbox), 1)

    def test_failed_delivery_backs_off_exponentially(self) -> None:
        outbound = services.enqueue(_activated())

        before = timezone.now()
        services.deliver(outbound.pk, sender=_failing_sender)
        outbound.refresh_from_db()
        first_delay = outbound.next_attempt_at - before

        services.deliver(outbound.pk, sender=_failing_sender)
        outbound.refresh_from_db()

        self.assertEqual(outbound.status, OutboundEvent.Status.PENDING)
        self.assertEqual(outbound.attempts, 2)
        self.assertEqual(outbound.error_message, "SMTP unavailable")
        self.assertGreaterEqual(first_delay, timedelta(seconds=60))
        self.assertLess(first_delay, timedelta(seconds=61))
        self.assertGreaterEqual(outbound.next_attempt_at - before, timedelta(seconds=120))

    def test_delivery_is_dead_lettered_after_max_attempts(self) -> None:
        outbound = services.enqueue(_activated())

        statuses = [services.deliver(outbound.pk, sender=_failing_sender) for _ in range(5)]

        self.assertEqual(statuses[:4], [OutboundEvent.Status.PENDING] * 4)
        self.assertEqual(statuses[4], OutboundEvent.Status.DEAD)
        self.assertEqual(services.deliver(outbound.pk, sender=_failing_sender), OutboundEvent.Status.DEAD)

    def test_missing_recipient_goes_straight_to_dead_letter(self) -> None:
        outbound = services.enqueue(_activated(email=""))

        self.assertEqual(services.deliver(outbound.pk), OutboundEvent.Status.DEAD)
        self.assertEqual(mail.outbox, [])

    def test_backoff_doubles(self) -> None:
        self.assertEqual(
            [services.backoff_delay(n, 60).total_seconds() for n in (1, 2, 3, 4)],
            [60, 120, 240, 480],
        )

    def test_retry_task_delivers_due_rows_only(self) -> None:
        due = services.enqueue(_activated())
        later = services.enqueue(_activated(email="sommer@example.com"))
        OutboundEvent.objects.filter(pk=later.pk).update(next_attempt_at=timezone.now() + timedelta(minutes=5))

        self.assertEqual(retry_due_outbound_events(), {"sent": 1, "pending": 0, "dead": 0})
        due.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(due.status, OutboundEvent.Status.SENT)
        self.assertEqual(later.status, OutboundEvent.Status.PENDING)

    def test_bus_handler_queues_and_dispatches(self) -> None:
        queue_notification(_activated())

        outbound = OutboundEvent.objects.get()
        self.assertEqual(outbound.event_type, "TrialActivated")
        self.assertEqual(outbound.status, OutboundEvent.Status.SENT)
        self.assertEqual(len(mail.outbox), 1)
