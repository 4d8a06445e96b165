"""
Event Dispatcher

In-process, synchronous callback map. Handlers run in registration order
within the publishing call; nothing is queued, persisted or retried.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from .models import Event, EventType, DeliveryReceipt, DeliveryStatus

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Any]


class EventDispatcher:
    """Routes workflow events to registered handlers."""

    def __init__(self):
        self._handlers: Dict[EventType, Dict[str, EventHandler]] = {}

    def subscribe(self, event_type: EventType, handler_id: str, handler: EventHandler) -> None:
        """Register (or replace) a handler for an event type."""
        self._handlers.setdefault(event_type, {})[handler_id] = handler
        logger.debug(f"Handler {handler_id} subscribed to {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler_id: str) -> bool:
        handlers = self._handlers.get(event_type, {})
        if handler_id in handlers:
            del handlers[handler_id]
            logger.debug(f"Handler {handler_id} unsubscribed from {event_type.value}")
            return True
        return False

    def handlers_for(self, event_type: EventType) -> List[str]:
        return list(self._handlers.get(event_type, {}).keys())

    def publish(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> List[DeliveryReceipt]:
        """
        Deliver an event to every handler registered for its type.

        Args:
            event_type: Type of event
            payload: Event data

        Returns:
            One DeliveryReceipt per handler. A failing handler is logged and
            marked FAILED; remaining handlers still run.
        """
        event = Event(event_type=event_type, payload=payload or {})
        receipts = []

        # Copy so handlers may (un)subscribe while being called
        for handler_id, handler in list(self._handlers.get(event_type, {}).items()):
            status, error = DeliveryStatus.PROCESSED, None
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {handler_id} failed on {event_type.value}: {e}", exc_info=True)
                status, error = DeliveryStatus.FAILED, str(e)
            receipts.append(DeliveryReceipt(
                event_id=event.event_id,
                event_type=event_type,
                handler_id=handler_id,
                status=status,
                error=error,
            ))

        if not receipts:
            logger.debug(f"No handlers for event_type: {event_type.value}")
        return receipts
