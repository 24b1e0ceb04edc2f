"""
Base Domain Classes

Building blocks shared by the booking and ledger domains:
- DomainEvent: Something that happened, published after commit
- EventRecorder: Mixin for objects that record domain events
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Domain events represent something that happened in the domain.
    They are collected inside a unit of work and published only after
    the surrounding transaction commits.
    """
    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=datetime.now, kw_only=True)
    aggregate_id: int | None = field(default=None, kw_only=True)

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': self.aggregate_id,
        }


class EventRecorder:
    """
    Mixin for aggregate roots

    Collects domain events that the unit of work picks up and
    publishes after a successful transaction.
    """

    def record_event(self, event: DomainEvent):
        """Add a domain event to be published"""
        if not hasattr(self, '_pending_events'):
            self._pending_events: List[DomainEvent] = []
        self._pending_events.append(event)

    def clear_events(self):
        """Clear all collected events (called once collected)"""
        self._pending_events = []

    @property
    def events(self) -> List[DomainEvent]:
        """Get copy of collected events"""
        return list(getattr(self, '_pending_events', []))
