"""
Logbook of completed arrest episodes.

The session hands a finalised episode to an `Archiver` exactly once per
generation. Archivers own the resulting `ArchivedLog` and must not let
storage faults propagate back into the clinical workflow.

ARCHITECTURE:
- Archiver: interface called by the session at finalize time
- InMemoryLogbook: process-lifetime logbook with pandas tabulation and CSV export
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

import pandas as pd

from data.contracts import ArchivedLog, Event, Outcome
from session.summary import build_summary, format_time

logger = logging.getLogger(__name__)


# =============================================================================
# ARCHIVER INTERFACE
# =============================================================================

class Archiver:
    """Receives finalised episodes from the session."""

    def save(
        self,
        started_at: datetime,
        total_duration_sec: float,
        outcome: Outcome,
        events: Sequence[Event],
        ended_at: Optional[datetime] = None,
    ) -> Optional[ArchivedLog]:
        raise NotImplementedError


# =============================================================================
# IN-MEMORY LOGBOOK
# =============================================================================

class InMemoryLogbook(Archiver):
    """
    Logbook held in memory for the lifetime of the process.

    Logs are listed newest-first by start time.
    """

    def __init__(self):
        self._logs: List[ArchivedLog] = []

    def save(
        self,
        started_at: datetime,
        total_duration_sec: float,
        outcome: Outcome,
        events: Sequence[Event],
        ended_at: Optional[datetime] = None,
    ) -> Optional[ArchivedLog]:
        log = ArchivedLog(
            started_at=started_at,
            total_duration_sec=total_duration_sec,
            outcome=outcome,
            events=tuple(events),
            ended_at=ended_at,
        )
        self._logs.append(log)
        self._logs.sort(key=lambda l: l.started_at, reverse=True)
        logger.info(
            f"Archived {outcome.value} episode from {started_at:%Y-%m-%d %H:%M:%S} "
            f"({format_time(total_duration_sec)}, {len(log.events)} events)"
        )
        return log

    @property
    def logs(self) -> List[ArchivedLog]:
        return list(self._logs)

    def get(self, log_id: str) -> Optional[ArchivedLog]:
        for log in self._logs:
            if log.id == log_id:
                return log
        return None

    def delete(self, index: int) -> ArchivedLog:
        """Delete the log at a display index (newest-first)."""
        log = self._logs.pop(index)
        logger.info(f"Deleted archived log {log.id}")
        return log

    def summary_text(self, log: ArchivedLog) -> str:
        return build_summary(log.events, log.total_duration_sec)

    # =========================================================================
    # TABULATION
    # =========================================================================

    def to_dataframe(self) -> pd.DataFrame:
        """One row per archived episode, newest first."""
        columns = ["id", "started_at", "ended_at", "duration_sec", "duration", "outcome", "n_events"]
        rows = [
            {
                "id": log.id,
                "started_at": log.started_at,
                "ended_at": log.ended_at,
                "duration_sec": log.total_duration_sec,
                "duration": format_time(log.total_duration_sec),
                "outcome": log.outcome.value,
                "n_events": len(log.events),
            }
            for log in self._logs
        ]
        return pd.DataFrame(rows, columns=columns)

    def events_dataframe(self, log: ArchivedLog) -> pd.DataFrame:
        """Events of one log in chronological order."""
        df = pd.DataFrame(
            [e.to_dict() for e in log.events],
            columns=["id", "timestamp_sec", "message", "category"],
        )
        df = df.iloc[::-1].sort_values("timestamp_sec", kind="stable").reset_index(drop=True)
        df["time"] = df["timestamp_sec"].map(format_time)
        return df

    def outcome_counts(self) -> Dict[str, int]:
        counts = self.to_dataframe()["outcome"].value_counts()
        return {outcome.value: int(counts.get(outcome.value, 0)) for outcome in Outcome}

    def export_csv(self, path: str) -> bool:
        """
        Write the logbook table to CSV.

        Returns False (and logs) on a storage fault instead of raising.
        """
        try:
            self.to_dataframe().to_csv(path, index=False)
        except OSError:
            logger.exception(f"Could not export logbook to {path}")
            return False
        logger.info(f"Exported {len(self._logs)} archived logs to {path}")
        return True

    def __len__(self) -> int:
        return len(self._logs)
