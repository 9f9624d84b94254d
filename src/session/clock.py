"""
Time sources for the arrest session.

`Clock` reads the wall clock. `ManualClock` is a virtual clock that only
moves when told to, used for deterministic tests and scripted demos.

Both return timezone-aware datetimes. Elapsed time is the difference of two
aware instants, so a daylight-saving change during an arrest neither adds
nor removes an hour; the local offset only affects how times are displayed.
"""

from datetime import datetime, timedelta, timezone


class Clock:
    """Wall-clock time source (aware, in the host's local zone)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone()


class ManualClock(Clock):
    """Virtual clock advanced explicitly by the caller."""

    def __init__(self, start: datetime = None):
        if start is None:
            start = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        if start.tzinfo is None:
            raise ValueError("ManualClock needs a timezone-aware start time")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += timedelta(seconds=seconds)
        return self._now

    def set(self, instant: datetime) -> datetime:
        """Jump to an aware instant, e.g. the same moment in another UTC offset."""
        if instant.tzinfo is None:
            raise ValueError("ManualClock needs a timezone-aware time")
        if instant < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = instant
        return self._now
