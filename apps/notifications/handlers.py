"""Message bus handler feeding domain events into the outbox."""

import logging

from shared.application.message_bus import message_bus
from shared.domain.base import DomainEvent

from .services import enqueue
from .tasks import deliver_outbound_event

logger = logging.getLogger(__name__)


@message_bus.subscribe(DomainEvent)
def queue_notification(event: DomainEvent) -> None:
    outbound = enqueue(event)
    if outbound is None:
        return
    try:
        deliver_outbound_event.delay(str(outbound.id))
    except Exception as e:
        # The periodic retry task picks the row up.
        logger.warning(f"Could not dispatch notification {outbound.id}: {e}")
