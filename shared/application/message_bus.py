"""
Message Bus

Routes lifecycle commands and queries to their single handler and
fans domain events out to any number of subscribers.

The HTTP views and the Celery sweep talk to the booking core only through
``message_bus.handle_command``. Units of work hand committed events to
``message_bus.publish_events``.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent
from shared.domain.errors import DomainError

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Any]
EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """
    Commands: exactly one handler per command type
    Events: zero or more handlers per event type, called in registration order
    """

    def __init__(self):
        self._command_handlers: Dict[Type, CommandHandler] = {}
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    # ----- registration -----

    def register_command_handler(self, command_type: Type, handler: CommandHandler, replace: bool = False):
        """
        Bind ``handler`` to ``command_type``

        A second binding is a programming error unless ``replace`` is set,
        which tests use to rebuild handlers around a pinned clock.
        """
        if command_type in self._command_handlers and not replace:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler
        logger.debug(f"Command {command_type.__name__} -> {type(handler).__name__}")

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        subscribers = self._event_handlers[event_type]
        if handler in subscribers:
            return
        subscribers.append(handler)
        logger.debug(f"Event {event_type.__name__} -> {getattr(handler, '__name__', handler)}")

    def has_command_handler(self, command_type: Type) -> bool:
        return command_type in self._command_handlers

    # ----- dispatch -----

    def handle_command(self, command: Any) -> Any:
        """
        Run the handler bound to ``type(command)`` and return its result

        Domain errors are expected outcomes and propagate to the caller
        unchanged; anything else is logged with a traceback first.
        """
        name = type(command).__name__
        try:
            handler = self._command_handlers[type(command)]
        except KeyError:
            raise ValueError(f"No handler registered for {name}") from None

        logger.info(f"Dispatching {name}")
        try:
            return handler(command)
        except DomainError as e:
            logger.info(f"{name} refused: {e}")
            raise
        except Exception:
            logger.error(f"{name} crashed", exc_info=True)
            raise

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver committed events to their subscribers

        A failing subscriber is logged and skipped; the others still run
        because the state change behind the event is already committed.
        """
        for event in events:
            subscribers = self._event_handlers.get(type(event), [])
            if not subscribers:
                logger.debug(f"{type(event).__name__} has no subscribers")
                continue
            for handler in subscribers:
                try:
                    handler(event)
                except Exception:
                    logger.error(
                        f"Subscriber {getattr(handler, '__name__', handler)} failed on "
                        f"{type(event).__name__} {event.event_id}",
                        exc_info=True,
                    )


# Composition-root bus used by the HTTP layer and the Celery tasks
message_bus = MessageBus()
