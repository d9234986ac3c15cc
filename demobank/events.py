"""
Event System Module

Domain events queued by the Account aggregate and the publish/subscribe
dispatcher the application layer hands them to after a successful save.
The aggregate never dispatches events itself.
"""

from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Any, Mapping, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .exceptions import EventDispatchError


class DomainEvent(Enum):
    """Domain events that can occur on an account"""
    ACCOUNT_CREATED = "account.created"
    MONEY_DEPOSITED = "account.money_deposited"
    MONEY_WITHDRAWN = "account.money_withdrawn"
    MONEY_TRANSFERRED = "account.money_transferred"
    FEE_CHARGED = "account.fee_charged"
    INTEREST_APPLIED = "account.interest_applied"
    WITHDRAWAL_INITIATED = "account.withdrawal_initiated"
    TRANSACTION_FAILED = "account.transaction_failed"
    TRANSACTION_CANCELLED = "account.transaction_cancelled"
    ACCOUNT_NAME_UPDATED = "account.name_updated"
    ACCOUNT_FROZEN = "account.frozen"
    ACCOUNT_UNFROZEN = "account.unfrozen"
    ACCOUNT_CLOSED = "account.closed"


@dataclass(frozen=True)
class EventPayload:
    """Immutable fact about something that happened to an aggregate"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Mapping[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        # Handlers share one read-only copy
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': dict(self.data),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=DomainEvent(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


def create_account_event(event_type: DomainEvent, account_id: str, data: Dict[str, Any],
                         timestamp: Optional[datetime] = None) -> EventPayload:
    """Create an account-related event"""
    return EventPayload(
        event_type=event_type,
        entity_type="account",
        entity_id=account_id,
        data=data,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventDispatcher:
    """Central event dispatcher using publish/subscribe"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("demobank.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            if event_type in self._handlers:
                try:
                    self._handlers[event_type].remove(handler)
                    self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
                except ValueError:
                    self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe a catch-all handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> List[Dict[str, str]]:
        """
        Publish event to all subscribers

        A failing handler is logged and does not stop the remaining handlers.

        Returns:
            List of failures, one dict per handler that raised
        """
        failures = []
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)
        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(
                    f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}"
                )
                failures.append({
                    'event_id': event.event_id,
                    'event_type': event.event_type.value,
                    'handler': _handler_name(handler),
                    'error': str(e),
                })
        return failures

    def dispatch(self, events: Sequence[EventPayload]) -> None:
        """
        Publish an ordered batch of events

        Raises:
            EventDispatchError: If any handler failed for any event
        """
        failures = []
        for event in events:
            failures.extend(self.publish(event))
        if failures:
            raise EventDispatchError(failures)

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
