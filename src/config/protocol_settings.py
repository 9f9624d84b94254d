"""
Protocol Settings for the Resuscitation Tracker.

v1.2: Timing configuration supplied by the host's settings store.

The session never caches these values. It asks the provider for the
current settings at every tick and every command, so a change made
mid-episode takes effect at the next cycle or interval computation.
"""

from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Tuple
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# RECOGNISED RANGES
# =============================================================================

SETTING_RANGES: Dict[str, Tuple[float, float]] = {
    "cpr_cycle_duration_sec": (60.0, 300.0),
    "adrenaline_interval_sec": (120.0, 600.0),
    "metronome_bpm": (80.0, 140.0),
}

HYPOTHERMIA_INTERVAL_MULTIPLIER = 2.0


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class ProtocolSettings:
    """
    Timing parameters for one resuscitation protocol.

    All durations are in seconds.
    """
    # CPR cycle between rhythm checks
    cpr_cycle_duration_sec: float = 120.0
    
    # Adrenaline repeat interval (doubled in moderate hypothermia)
    adrenaline_interval_sec: float = 240.0
    hypothermia_interval_multiplier: float = HYPOTHERMIA_INTERVAL_MULTIPLIER
    
    # Cosmetic, consumed by the metronome collaborator only
    metronome_bpm: float = 110.0
    
    # Ticker cadence and jitter absorbed at CPR rollover
    tick_interval_sec: float = 1.0
    rollover_tolerance_sec: float = 1.0
    
    # Reminder windows
    cpr_warning_window_sec: float = 10.0
    adrenaline_due_soon_window_sec: float = 30.0

    def validate(self) -> "ProtocolSettings":
        """
        Return a copy with values clamped into their recognised ranges.

        Raises:
            ValueError: if any duration is not positive
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in ("rollover_tolerance_sec", "cpr_warning_window_sec",
                          "adrenaline_due_soon_window_sec"):
                if value < 0:
                    raise ValueError(f"{f.name} must not be negative, got {value}")
            elif value <= 0:
                raise ValueError(f"{f.name} must be positive, got {value}")

        changes: Dict[str, float] = {}
        for name, (low, high) in SETTING_RANGES.items():
            value = getattr(self, name)
            clamped = min(max(value, low), high)
            if clamped != value:
                logger.warning(
                    f"{name}={value} outside recognised range [{low}, {high}], using {clamped}"
                )
                changes[name] = clamped

        # The hypothermia multiplier is fixed by protocol
        if self.hypothermia_interval_multiplier != HYPOTHERMIA_INTERVAL_MULTIPLIER:
            logger.warning(
                f"hypothermia_interval_multiplier is fixed at {HYPOTHERMIA_INTERVAL_MULTIPLIER}"
            )
            changes["hypothermia_interval_multiplier"] = HYPOTHERMIA_INTERVAL_MULTIPLIER

        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ProtocolSettings":
        """Build settings from a stored mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            logger.debug(f"Ignoring unknown settings keys: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in values.items() if k in known}).validate()


# =============================================================================
# SETTINGS PROVIDER
# =============================================================================

class SettingsProvider:
    """
    Live settings source read by the session on demand.

    Hosts backed by a persistent store can subclass and override `current()`.
    """

    def __init__(self, settings: ProtocolSettings = None):
        if settings is None:
            settings = ProtocolSettings()
        self._settings = settings.validate()

    def current(self) -> ProtocolSettings:
        return self._settings

    def update(self, **changes: Any) -> ProtocolSettings:
        """Replace individual settings; takes effect at the next computation."""
        updated = replace(self._settings, **changes).validate()
        logger.info(f"Protocol settings updated: {changes}")
        self._settings = updated
        return updated


def get_default_settings() -> ProtocolSettings:
    """Get the default adult ALS timing settings."""
    return ProtocolSettings()
