"""
Composition root for the booking lifecycle

Builds handlers with explicit dependencies and registers them on a
message bus. Tests build their own handlers with a fixed clock instead of
using the global bus.
"""

from typing import Callable
import logging

from apps.bookings.application import command_handlers as ch
from apps.bookings.application.event_handlers import log_domain_event
from apps.bookings.domain import events
from apps.bookings.services import AvailabilityChecker
from apps.finances.ledger import Ledger
from shared.application.clock import Clock, system_clock
from shared.application.message_bus import MessageBus, message_bus
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork

logger = logging.getLogger(__name__)

HANDLER_CLASSES = {
    ch.CreateBookingCommand: ch.CreateBookingHandler,
    ch.ApproveBookingCommand: ch.ApproveBookingHandler,
    ch.RejectBookingCommand: ch.RejectBookingHandler,
    ch.CancelBookingCommand: ch.CancelBookingHandler,
    ch.RequestModificationCommand: ch.RequestModificationHandler,
    ch.ApproveModificationCommand: ch.ApproveModificationHandler,
    ch.RejectModificationCommand: ch.RejectModificationHandler,
    ch.CompleteBookingCommand: ch.CompleteBookingHandler,
    ch.CheckConflictQuery: ch.CheckConflictHandler,
    ch.QuoteRentQuery: ch.QuoteRentHandler,
}

BOOKING_EVENTS = (
    events.BookingCreated,
    events.BookingApproved,
    events.BookingRejected,
    events.BookingCancelled,
    events.BookingModificationRequested,
    events.BookingModificationApproved,
    events.BookingModificationRejected,
    events.BookingCompleted,
)


def build_handlers(
    *,
    clock: Clock = system_clock,
    uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
    ledger: Ledger | None = None,
    availability: AvailabilityChecker | None = None,
) -> dict:
    """One handler per command, all sharing the same collaborators"""
    ledger = ledger or Ledger(uow_factory=uow_factory)
    availability = availability or AvailabilityChecker()
    return {
        command_type: handler_class(
            ledger=ledger,
            availability=availability,
            clock=clock,
            uow_factory=uow_factory,
        )
        for command_type, handler_class in HANDLER_CLASSES.items()
    }


def register_handlers(bus: MessageBus = message_bus, *, replace: bool = False, **dependencies):
    for command_type, handler in build_handlers(**dependencies).items():
        if bus.has_command_handler(command_type) and not replace:
            continue
        bus.register_command_handler(command_type, handler, replace=replace)
    for event_type in BOOKING_EVENTS:
        bus.register_event_handler(event_type, log_domain_event)
    logger.debug(f"Registered {len(HANDLER_CLASSES)} booking handlers")
