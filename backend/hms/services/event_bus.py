"""
Domain event bus

Services hand an event to the bus only after their unit of work commits.
Subscribers react outside that unit of work (ledger follow-ups, logging), so a
failing subscriber can never undo a booking, a payment or a check-out.
"""
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, DefaultDict, Deque, Dict, List, Optional
import logging
import threading
import uuid

from hms.models.events import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Committed domain event"""
    event_type: EventType
    timestamp: datetime
    data: Dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def reservation_id(self) -> Optional[str]:
        return self.data.get("reservation_id")


EventHandler = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe keyed by EventType, with a bounded history"""

    def __init__(self, history_size: int = 200):
        self._handlers: DefaultDict[EventType, List[EventHandler]] = defaultdict(list)
        self._history: Deque[Event] = deque(maxlen=history_size)
        self._lock = threading.RLock()

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers.get(event_type, []):
                self._handlers[event_type].remove(handler)

    def handlers_for(self, event_type: EventType) -> List[EventHandler]:
        with self._lock:
            return list(self._handlers.get(event_type, []))

    def publish(self, event: Event) -> int:
        """
        Record the event and run its handlers in subscription order

        Returns how many handlers completed. A handler that raises is logged
        and skipped; the rest still run.
        """
        with self._lock:
            self._history.append(event)
        completed = 0
        for handler in self.handlers_for(event.event_type):
            try:
                handler(event)
                completed += 1
            except Exception:
                logger.exception("Handler %s failed on %s (reservation %s)",
                                 getattr(handler, "__qualname__", handler),
                                 event.event_type.value, event.reservation_id)
        return completed

    def get_history(self, event_type: Optional[EventType] = None,
                    reservation_id: Optional[str] = None, limit: int = 50) -> List[Event]:
        """Recent events, newest first"""
        with self._lock:
            history = list(reversed(self._history))
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        if reservation_id:
            history = [e for e in history if e.reservation_id == reservation_id]
        return history[:limit]

    def clear_subscribers(self) -> None:
        with self._lock:
            self._handlers.clear()

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()


# process-wide bus used when a service is given no publisher
event_bus = EventBus()
