"""
Configuration module for the Resuscitation Tracker.

v1.2: Contains protocol timing settings, checklist templates and clinical vocabulary.
"""

from .protocol_settings import (
    ProtocolSettings,
    SettingsProvider,
    SETTING_RANGES,
    HYPOTHERMIA_INTERVAL_MULTIPLIER,
    get_default_settings,
)
from .checklists import (
    REVERSIBLE_CAUSES,
    POST_ROSC_TASKS,
    POST_MORTEM_TASKS,
    CHECKLIST_TEMPLATES,
    OTHER_MEDICATIONS,
    RHYTHMS,
    build_checklist,
    is_shockable,
)

__all__ = [
    # Protocol settings
    'ProtocolSettings',
    'SettingsProvider',
    'SETTING_RANGES',
    'HYPOTHERMIA_INTERVAL_MULTIPLIER',
    'get_default_settings',
    
    # Checklists and vocabulary
    'REVERSIBLE_CAUSES',
    'POST_ROSC_TASKS',
    'POST_MORTEM_TASKS',
    'CHECKLIST_TEMPLATES',
    'OTHER_MEDICATIONS',
    'RHYTHMS',
    'build_checklist',
    'is_shockable',
]
