# Session module
# v1.2: Arrest session state machine with event log, undo and ticker

from .clock import (
    Clock,
    ManualClock,
)
from .ticker import (
    Ticker,
    ThreadTicker,
    ManualTicker,
)
from .event_log import EventLog
from .undo_stack import (
    SessionSnapshot,
    UndoStack,
)
from .summary import (
    format_time,
    build_summary,
)
from .arrest_session import (
    ArrestSession,
    SessionView,
)

__all__ = [
    # Time
    'Clock',
    'ManualClock',
    'Ticker',
    'ThreadTicker',
    'ManualTicker',
    
    # Log and undo
    'EventLog',
    'SessionSnapshot',
    'UndoStack',
    
    # Export
    'format_time',
    'build_summary',
    
    # Core
    'ArrestSession',
    'SessionView',
]
