"""
Snapshot-based undo for the arrest session.

Every mutating command pushes a full, independent copy of session state
before it runs. Popping restores that state verbatim. There is no redo and
the stack is unbounded; a reset clears it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from data.contracts import (
    AntiarrhythmicClass,
    ArrestPhase,
    ChecklistItem,
    Event,
    SubPhase,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Immutable copy of every mutable session field.

    Checklist items are copied on capture and again on restore, so neither
    the live session nor a later snapshot can alias them.
    """
    phase: ArrestPhase
    sub_phase: SubPhase
    started_at: Optional[datetime]
    elapsed_sec: float
    downtime_offset_sec: float
    cpr_cycle_anchor_sec: float
    cpr_cycle_duration_sec: float
    cpr_remaining_sec: float
    shock_count: int
    adrenaline_count: int
    amiodarone_count: int
    lidocaine_count: int
    airway_placed: bool
    antiarrhythmic_class: AntiarrhythmicClass
    last_adrenaline_at_sec: Optional[float]
    shock_count_at_first_amiodarone: Optional[int]
    events: Tuple[Event, ...]
    reversible_causes: Tuple[ChecklistItem, ...]
    post_rosc_tasks: Tuple[ChecklistItem, ...]
    post_mortem_tasks: Tuple[ChecklistItem, ...]


def copy_checklist(items) -> Tuple[ChecklistItem, ...]:
    return tuple(item.copy() for item in items)


class UndoStack:
    """LIFO stack of session snapshots."""

    def __init__(self):
        self._stack: List[SessionSnapshot] = []

    def push(self, snapshot: SessionSnapshot) -> None:
        self._stack.append(snapshot)

    def pop(self) -> Optional[SessionSnapshot]:
        """Remove and return the newest snapshot, or None when empty."""
        if not self._stack:
            return None
        return self._stack.pop()

    def clear(self) -> None:
        if self._stack:
            logger.debug(f"Discarding {len(self._stack)} undo snapshots")
        self._stack.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._stack)

    def __len__(self) -> int:
        return len(self._stack)
