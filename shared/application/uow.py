"""
Unit of Work

One unit of work is one database transaction plus the domain events
raised while it ran. Events leave the unit only after the outermost
transaction commits; a rollback throws them away.
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from django.db import DEFAULT_DB_ALIAS, transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

Publisher = Callable[[List[DomainEvent]], None]


class AbstractUnitOfWork(ABC):
    """Context manager contract shared by the lifecycle and the ledger"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        ...

    @abstractmethod
    def rollback(self):
        ...

    @abstractmethod
    def collect_events(self, aggregate):
        """Take pending events off ``aggregate`` for publishing on commit"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    ``transaction.atomic()`` with deferred event publishing

    Entering inside another atomic block creates a savepoint, so the
    ledger's unit of work nested in a lifecycle command shares its fate.

        with DjangoUnitOfWork() as uow:
            apartment = availability.lock_apartment(apartment_id)
            booking = Booking.objects.create(...)
            ledger.transfer(...)
            booking.record_event(BookingCreated(...))
            uow.collect_events(booking)

    ``publisher`` defaults to the global message bus; tests pass a list's
    ``extend`` to capture what would be published.
    """

    def __init__(self, publisher: Publisher | None = None, using: str = DEFAULT_DB_ALIAS):
        self._publisher = publisher
        self._using = using
        self._atomic = None
        self._events: List[DomainEvent] = []

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        # atomic() does the actual commit on exit; only events are handled here
        if not self._events:
            return
        events, self._events = self._events, []
        logger.debug(f"{len(events)} events wait for commit")
        transaction.on_commit(lambda: self._publish(events), using=self._using)

    def rollback(self):
        if self._events:
            logger.warning(f"Unit of work rolled back, dropping {len(self._events)} events")
        else:
            logger.warning("Unit of work rolled back")
        self._events = []

    def collect_events(self, aggregate):
        pending = aggregate.events
        if not pending:
            return
        self._events.extend(pending)
        aggregate.clear_events()
        logger.debug(f"Collected {len(pending)} events from {type(aggregate).__name__} {aggregate.pk}")

    def _publish(self, events: List[DomainEvent]):
        publish = self._publisher
        if publish is None:
            from shared.application.message_bus import message_bus
            publish = message_bus.publish_events

        logger.info(f"Publishing {len(events)} events after commit")
        try:
            publish(events)
        except Exception:
            # Data is already committed; publishing failures are only reported
            logger.error("Publishing committed events failed", exc_info=True)
