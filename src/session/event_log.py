"""
Append-only event log for one session generation.

Events are stored newest-first for display. Each carries the session's total
elapsed time at creation, so consumers needing true order sort ascending by
`timestamp_sec`. Adding downtime shifts the timestamps of later events only;
recorded events are never rewritten.
"""

from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from data.contracts import Event, EventCategory


class EventLog:
    """Newest-first list of immutable events."""

    def __init__(self, time_source: Callable[[], float]):
        """
        Args:
            time_source: returns the session's current total elapsed seconds
        """
        self._time_source = time_source
        self._events: List[Event] = []

    def record(self, message: str, category: EventCategory) -> Event:
        event = Event(
            timestamp_sec=self._time_source(),
            message=message,
            category=category,
        )
        self._events.insert(0, event)
        return event

    def snapshot(self) -> Tuple[Event, ...]:
        # Events are frozen, so a shallow tuple is an independent copy
        return tuple(self._events)

    def restore(self, events: Sequence[Event]) -> None:
        self._events = list(events)

    def clear(self) -> None:
        self._events = []

    def chronological(self) -> List[Event]:
        """Events oldest-first. Stable for equal timestamps."""
        return sorted(reversed(self._events), key=lambda e: e.timestamp_sec)

    def by_category(self, category: EventCategory) -> List[Event]:
        return [e for e in self._events if e.category == category]

    @property
    def latest(self) -> Optional[Event]:
        return self._events[0] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)
