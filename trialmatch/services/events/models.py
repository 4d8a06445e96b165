"""
Data models for the event dispatcher.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class EventType(str, Enum):
    """Workflow events."""
    TRIAL_MATCHES_FOUND = "trial_matches_found"
    NOTIFICATIONS_SENT = "notifications_sent"
    NOTIFICATION_VIEWED = "notification_viewed"
    CONSENT_UPDATED = "consent_updated"
    MATCH_STATUS_UPDATED = "match_status_updated"


class DeliveryStatus(str, Enum):
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass
class Event:
    """An event published by a workflow step."""
    event_type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class DeliveryReceipt:
    """Outcome of delivering one event to one handler."""
    event_id: str
    event_type: EventType
    handler_id: str
    status: DeliveryStatus
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'event_id': self.event_id,
            'event_type': self.event_type.value,
            'handler_id': self.handler_id,
            'status': self.status.value,
            'error': self.error,
        }
