"""
Event Package: in-process dispatch of workflow events.
"""
from .models import Event, EventType, DeliveryReceipt, DeliveryStatus
from .dispatcher import EventDispatcher, EventHandler

__all__ = [
    "Event",
    "EventType",
    "DeliveryReceipt",
    "DeliveryStatus",
    "EventDispatcher",
    "EventHandler",
]
