"""
Match Events - Multi-subscriber notification for renderers and transports.

Any number of observers (renderer, transport broadcaster, test harness)
can subscribe to the same match without replacing each other.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import logging

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Kinds of events a match publishes."""
    MATCH_STARTED = "match_started"
    LOG_LINE_APPENDED = "log_line_appended"
    ROUND_RESOLVED = "round_resolved"
    MATCH_OVER = "match_over"
    PARTICIPANT_JOINED = "participant_joined"
    PARTICIPANT_LEFT = "participant_left"


@dataclass
class MatchEvent:
    """
    A single published event.

    snapshot is the state_snapshot dict taken after the change, for
    kinds that change match state; log line events carry the line instead.
    """
    kind: EventKind
    match_id: str
    round: int
    line: str | None = None
    snapshot: dict[str, Any] | None = None
    data: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[MatchEvent], None]


class EventBus:
    """
    Observer list with optional per-kind filtering.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(render, kinds={EventKind.ROUND_RESOLVED})
        bus.publish(event)
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: list[tuple[Subscriber, frozenset[EventKind] | None]] = []

    def subscribe(
        self,
        callback: Subscriber,
        kinds: set[EventKind] | None = None,
    ) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        entry = (callback, frozenset(kinds) if kinds else None)
        self._subscribers.append(entry)

        def unsubscribe():
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: MatchEvent):
        """Deliver an event to every interested subscriber, in subscription order."""
        for callback, kinds in list(self._subscribers):
            if kinds is not None and event.kind not in kinds:
                continue
            try:
                callback(event)
            except Exception:
                # One broken observer must not starve the others
                logger.exception("Subscriber %r failed on %s", callback, event.kind.value)

    def __len__(self) -> int:
        return len(self._subscribers)
