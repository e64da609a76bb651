"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work pattern

    Subclasses decide how the transaction is opened and how collected
    events reach the message bus; event collection is shared.
    """

    def __init__(self):
        self._events: List[DomainEvent] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Extracts all domain events from the aggregate and
        clears them from the aggregate.
        """
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def add_event(self, event: DomainEvent):
        """Queue an event that does not belong to an aggregate"""
        self._events.append(event)


def publish_to_message_bus(events: List[DomainEvent]):
    """Default publisher: hand the events to the global message bus"""
    from shared.application.message_bus import message_bus

    logger.info(f"Publishing {len(events)} domain events after commit")

    try:
        message_bus.publish_events(events)
    except Exception as e:
        logger.error(f"Error publishing events: {e}", exc_info=True)
        # Events are already committed to database
        # Failure to publish events should be handled by monitoring


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Manages Django database transactions and ensures domain events
    are published after successful commit.

    Usage:
        with DjangoUnitOfWork() as uow:
            vendor = vendor_repo.get(vendor_id)
            vendor.extend_trial(days=14, actor="admin", reason="fair")
            vendor_repo.save(vendor)
            uow.collect_events(vendor)
            # Transaction commits here
        # Events are published after commit
    """

    def __init__(self, publisher: Callable[[List[DomainEvent]], None] = publish_to_message_bus):
        super().__init__()
        self._publisher = publisher
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Commit changes and publish events

        Events are published using Django's transaction.on_commit()
        to ensure they're only sent after database commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            publisher = self._publisher
            transaction.on_commit(lambda: publisher(events))

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()
