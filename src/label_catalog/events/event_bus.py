"""
In-process publish/subscribe for domain events.

Local catalog writes announce themselves here, so components that hold data
derived from the local catalog (the TTL cache) can drop it without the writer
knowing about them.
"""

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class EventPriority(Enum):
    """NORMAL handlers run concurrently; CRITICAL ones run one by one in subscription order."""
    NORMAL = 1
    CRITICAL = 3


T = TypeVar('T', bound='DomainEvent')


@dataclass
class DomainEvent:
    """Common envelope of every event."""
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)
    aggregate_id: Optional[str] = None
    aggregate_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "metadata": dict(self.metadata),
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        return {}


def _weak(handler: Handler) -> weakref.ref:
    # Bound methods need WeakMethod or the reference dies immediately.
    if hasattr(handler, '__self__'):
        return weakref.WeakMethod(handler)
    return weakref.ref(handler)


class EventBus:
    """
    Routes events to the handlers subscribed to their type or a base type.

    Handlers are plain callables or coroutine functions, held weakly so a
    subscriber that goes away unsubscribes itself. A failing handler is
    logged; the publisher never sees its exception.
    """

    def __init__(self, max_events_in_memory: int = 1000):
        self._subscriptions: Dict[Type[DomainEvent], List[weakref.ref]] = {}
        self._history: List[DomainEvent] = []
        self._history_limit = max_events_in_memory

    def subscribe(self, event_type: Type[T], handler: Callable[[T], Any]) -> None:
        self._subscriptions.setdefault(event_type, []).append(_weak(handler))

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        refs = self._subscriptions.get(event_type)
        if refs is None:
            return
        self._subscriptions[event_type] = [
            ref for ref in refs if ref() is not None and ref() != handler
        ]

    def _handlers_for(self, event: DomainEvent) -> List[Handler]:
        handlers = []
        for klass in type(event).__mro__:
            for ref in self._subscriptions.get(klass, ()):
                handler = ref()
                if handler is not None:
                    handlers.append(handler)
        return handlers

    async def publish(
        self,
        event: DomainEvent,
        priority: EventPriority = EventPriority.NORMAL
    ) -> None:
        """Record ``event`` and deliver it to every live handler."""
        self._history.append(event)
        del self._history[:-self._history_limit]

        handlers = self._handlers_for(event)
        if priority is EventPriority.CRITICAL:
            for handler in handlers:
                await self._deliver(handler, event)
        elif handlers:
            await asyncio.gather(*(self._deliver(handler, event) for handler in handlers))

    async def _deliver(self, handler: Handler, event: DomainEvent) -> None:
        try:
            outcome = handler(event)
            if asyncio.iscoroutine(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Handler {handler!r} failed on {event.event_type}: {e}")

    def get_events(
        self,
        aggregate_id: Optional[str] = None,
        since: Optional[datetime] = None,
        event_type: Optional[Type[DomainEvent]] = None
    ) -> List[DomainEvent]:
        """Recorded events, oldest first, optionally filtered."""
        return [
            e for e in self._history
            if (aggregate_id is None or e.aggregate_id == aggregate_id)
            and (since is None or e.timestamp >= since)
            and (event_type is None or isinstance(e, event_type))
        ]

    def clear(self) -> None:
        """Forget all subscriptions and recorded events."""
        self._subscriptions.clear()
        self._history.clear()
