# Data contracts shared by every module

from .contracts import (
    ArrestPhase,
    SubPhase,
    EventCategory,
    HypothermiaGrade,
    AntiarrhythmicClass,
    Outcome,
    ChecklistKind,
    FeedbackCue,
    Event,
    ChecklistItem,
    ArchivedLog,
    HYPOTHERMIA_ITEM_NAME,
)

__all__ = [
    'ArrestPhase',
    'SubPhase',
    'EventCategory',
    'HypothermiaGrade',
    'AntiarrhythmicClass',
    'Outcome',
    'ChecklistKind',
    'FeedbackCue',
    'Event',
    'ChecklistItem',
    'ArchivedLog',
    'HYPOTHERMIA_ITEM_NAME',
]
