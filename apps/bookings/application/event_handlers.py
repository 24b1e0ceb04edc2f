"""
Booking Event Handlers

Default subscribers for booking domain events. Notification and
broadcast delivery plug in here by registering more handlers on the bus.
"""

import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


def log_domain_event(event: DomainEvent):
    """Write the committed event to the log"""
    payload = event.to_dict()
    logger.info(
        f"{payload['event_type']} for booking {getattr(event, 'booking_id', event.aggregate_id)}",
        extra={'domain_event': payload},
    )
