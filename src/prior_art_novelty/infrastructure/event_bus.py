"""Publication of pipeline events.

Search workers publish ``SourceFailed`` from pool threads, the service
publishes ``SearchRunCompleted`` when a run has been merged, and the
assessment graph publishes ``AssessmentStageCompleted`` and exactly one
``AssessmentTerminated`` per assessment.  Report rendering and notification
are subscribers; a subscriber that raises is logged and never affects the
run or assessment that published the event.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable

from prior_art_novelty.domain.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Synchronous dispatch of pipeline events.

    Handlers registered with ``subscribe_all`` run before typed handlers;
    within each group they run in registration order.

    Usage::

        bus = EventBus()
        bus.subscribe(AssessmentTerminated, render_report)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._typed: dict[type[DomainEvent], list[Handler]] = defaultdict(list)
        self._every: list[Handler] = []

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        with self._lock:
            self._typed[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        with self._lock:
            self._every.append(handler)

    def publish(self, event: DomainEvent) -> None:
        # Snapshot under the lock; handlers may subscribe while dispatching.
        with self._lock:
            handlers = [*self._every, *self._typed.get(type(event), ())]

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s from %s",
                    handler, type(event).__name__, event.source_id or "-",
                )


class EventStore:
    """Records published events, typically via ``bus.subscribe_all(store.append)``.

    Used by the CLI and tests to inspect what a run or assessment emitted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[DomainEvent] = []

    def append(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        source_id: str | None = None,
    ) -> list[DomainEvent]:
        """Events in publication order, optionally narrowed to one type and
        to one run or assessment id."""
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [e for e in events if isinstance(e, event_type)]
        if source_id is not None:
            events = [e for e in events if e.source_id == source_id]
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
