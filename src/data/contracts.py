"""
Core data contracts for the resuscitation tracker.

Every component exchanges state through these enums and dataclasses.
Events and archived logs are immutable once created; checklist items are
mutable only through the session, which copies them for undo snapshots.

Version: 1.2
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple
import uuid


# =============================================================================
# ENUMS
# =============================================================================

class ArrestPhase(Enum):
    """Top-level arrest state."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ROSC = "ROSC"
    ENDED = "ENDED"

    def is_timed(self) -> bool:
        """Phases in which the ticker must be running."""
        return self in (ArrestPhase.ACTIVE, ArrestPhase.ROSC)


class SubPhase(Enum):
    """
    Rhythm-check sub-state, only meaningful while ACTIVE.

    Governs which action buttons a renderer should offer.
    """
    DEFAULT = "default"
    ANALYZING = "analyzing"
    SHOCK_ADVISED = "shock_advised"


class EventCategory(Enum):
    """Event log categories."""
    STATUS = "status"
    CPR = "cpr"
    SHOCK = "shock"
    ANALYSIS = "analysis"
    RHYTHM = "rhythm"
    DRUG = "drug"
    AIRWAY = "airway"
    ETCO2 = "etco2"
    CAUSE = "cause"


class HypothermiaGrade(Enum):
    """Hypothermia status attached to the 'Hypothermia' reversible cause."""
    NONE = "none"
    SEVERE = "severe"               # < 30°C: adrenaline withheld
    MODERATE = "moderate"           # 30-35°C: adrenaline interval doubled
    NORMOTHERMIC = "normothermic"


class AntiarrhythmicClass(Enum):
    """Antiarrhythmic given this episode. The two classes are mutually exclusive."""
    NONE = "none"
    AMIODARONE = "amiodarone"
    LIDOCAINE = "lidocaine"


class Outcome(Enum):
    """Outcome recorded on an archived log."""
    ROSC = "ROSC"
    DECEASED = "Deceased"
    INCOMPLETE = "Incomplete"

    @classmethod
    def from_phase(cls, phase: ArrestPhase) -> "Outcome":
        if phase == ArrestPhase.ROSC:
            return cls.ROSC
        if phase == ArrestPhase.ENDED:
            return cls.DECEASED
        return cls.INCOMPLETE


class ChecklistKind(Enum):
    """The three checklists owned by a session."""
    REVERSIBLE_CAUSES = "reversible_causes"
    POST_ROSC = "post_rosc"
    POST_MORTEM = "post_mortem"


class FeedbackCue(Enum):
    """Cues for the external haptic/audio collaborator."""
    ACTION_CONFIRMED = "action_confirmed"
    CPR_CYCLE_ENDING = "cpr_cycle_ending"
    ADRENALINE_DUE = "adrenaline_due"
    RESET = "reset"


# =============================================================================
# EVENTS
# =============================================================================

def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Event:
    """
    One clinical event.

    `timestamp_sec` is the session's total elapsed time (live timer plus
    downtime offset) at the moment of creation, not wall-clock time.
    """
    timestamp_sec: float
    message: str
    category: EventCategory
    id: str = field(default_factory=_new_id)

    def same_content(self, other: "Event") -> bool:
        """Compare everything except identity."""
        return (
            self.timestamp_sec == other.timestamp_sec
            and self.message == other.message
            and self.category == other.category
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp_sec": self.timestamp_sec,
            "message": self.message,
            "category": self.category.value,
        }


# =============================================================================
# CHECKLISTS
# =============================================================================

HYPOTHERMIA_ITEM_NAME = "Hypothermia"


@dataclass
class ChecklistItem:
    """
    A completable clinical reminder.

    Only the reversible-cause item named "Hypothermia" uses `hypothermia_grade`.
    """
    name: str
    is_completed: bool = False
    hypothermia_grade: HypothermiaGrade = HypothermiaGrade.NONE
    id: str = field(default_factory=_new_id)

    def copy(self) -> "ChecklistItem":
        return replace(self)

    @property
    def is_hypothermia(self) -> bool:
        return self.name == HYPOTHERMIA_ITEM_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_completed": self.is_completed,
            "hypothermia_grade": self.hypothermia_grade.value,
        }


# =============================================================================
# ARCHIVED LOG
# =============================================================================

@dataclass(frozen=True)
class ArchivedLog:
    """
    Finalised record of one arrest episode.

    Created only by the session at finalize time; the archiver owns it after.
    """
    started_at: datetime
    total_duration_sec: float
    outcome: Outcome
    events: Tuple[Event, ...]
    ended_at: Optional[datetime] = None
    id: str = field(default_factory=_new_id)

    def chronological_events(self) -> List[Event]:
        return sorted(self.events, key=lambda e: e.timestamp_sec)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "total_duration_sec": self.total_duration_sec,
            "outcome": self.outcome.value,
            "events": [e.to_dict() for e in self.events],
        }
