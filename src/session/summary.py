"""
Human-readable export of an event log.

Format:
    Resuscitation Event Summary
    Total Arrest Time: mm:ss

    --- Event Log ---
    [mm:ss] message
    ...

Event lines are in chronological order regardless of how the log is stored.
"""

from typing import Iterable, List

from data.contracts import Event


SUMMARY_TITLE = "Resuscitation Event Summary"
LOG_HEADER = "--- Event Log ---"


def format_time(seconds: float) -> str:
    """Format seconds as mm:ss. Negative values show as 00:00; minutes are unbounded."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def chronological(events: Iterable[Event]) -> List[Event]:
    # Input is newest-first; reversing first keeps equal timestamps in insertion order
    return sorted(reversed(list(events)), key=lambda e: e.timestamp_sec)


def build_summary(events: Iterable[Event], total_elapsed_sec: float) -> str:
    """
    Build the export text for a session or an archived log.

    Args:
        events: Events in storage (newest-first) order
        total_elapsed_sec: Total arrest time for the header line
    """
    lines = [
        SUMMARY_TITLE,
        f"Total Arrest Time: {format_time(total_elapsed_sec)}",
        "",
        LOG_HEADER,
    ]
    lines.extend(f"[{format_time(e.timestamp_sec)}] {e.message}" for e in chronological(events))
    return "\n".join(lines)
