"""
Arrest Session State Machine.

v1.2: Single authority for the state of one resuscitation episode.

Key Components:
- ArrestSession: owns phase, sub-phase, counters, timers, checklists,
  the event log and the undo stack; every command and tick goes through it
- SessionView: immutable published state for renderers, re-read after every
  command and tick

Phases:
    PENDING --start_arrest--> ACTIVE --achieve_rosc--> ROSC --re_arrest--> ACTIVE
    ACTIVE | ROSC --end_arrest--> ENDED
    any --perform_reset--> PENDING

Sub-phases (ACTIVE only):
    DEFAULT --analyse_rhythm--> ANALYZING --log_rhythm(shockable)--> SHOCK_ADVISED
    ANALYZING --log_rhythm(non-shockable)--> DEFAULT (new CPR cycle)
    SHOCK_ADVISED --deliver_shock--> DEFAULT (new CPR cycle)

CRITICAL: commands never raise on malformed input or phase misuse. They
return False and leave state untouched, so a stray keystroke can never
block the clinical workflow.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union
import logging
import threading

from config.checklists import build_checklist
from config.protocol_settings import ProtocolSettings, SettingsProvider
from data.contracts import (
    AntiarrhythmicClass,
    ArrestPhase,
    ChecklistItem,
    ChecklistKind,
    Event,
    EventCategory,
    FeedbackCue,
    HypothermiaGrade,
    Outcome,
    SubPhase,
)
from dosage.dosage_rules import Drug, PatientAgeCategory, dose_for

from .clock import Clock
from .event_log import EventLog
from .summary import build_summary
from .ticker import ThreadTicker, Ticker
from .undo_stack import SessionSnapshot, UndoStack, copy_checklist

if TYPE_CHECKING:
    from archive.logbook import Archiver

logger = logging.getLogger(__name__)


HYPOTHERMIA_MESSAGES: Dict[HypothermiaGrade, str] = {
    HypothermiaGrade.SEVERE: "Hypothermia status set to: Severe (< 30°C)",
    HypothermiaGrade.MODERATE: "Hypothermia status set to: Moderate (30-35°C)",
    HypothermiaGrade.NORMOTHERMIC: "Hypothermia status cleared (Normothermic)",
    HypothermiaGrade.NONE: "Hypothermia status cleared",
}


# =============================================================================
# PUBLISHED STATE
# =============================================================================

@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of session state and every derived value."""
    phase: ArrestPhase
    sub_phase: SubPhase
    started_at: Optional[datetime]
    elapsed_sec: float
    downtime_offset_sec: float
    total_elapsed_sec: float
    cpr_cycle_anchor_sec: float
    cpr_remaining_sec: float
    shock_count: int
    adrenaline_count: int
    amiodarone_count: int
    lidocaine_count: int
    airway_placed: bool
    antiarrhythmic_class: AntiarrhythmicClass
    last_adrenaline_at_sec: Optional[float]
    shock_count_at_first_amiodarone: Optional[int]
    hypothermia_grade: HypothermiaGrade
    patient_age_category: Optional[PatientAgeCategory]
    metronome_on: bool

    # Eligibility and reminders
    is_adrenaline_available: bool
    is_amiodarone_available: bool
    is_lidocaine_available: bool
    is_adrenaline_due: bool
    is_adrenaline_due_soon: bool
    time_to_next_adrenaline_sec: float
    should_show_amiodarone_reminder: bool

    can_undo: bool
    ticker_running: bool
    events: Tuple[Event, ...] = field(default_factory=tuple)
    reversible_causes: Tuple[ChecklistItem, ...] = field(default_factory=tuple)
    post_rosc_tasks: Tuple[ChecklistItem, ...] = field(default_factory=tuple)
    post_mortem_tasks: Tuple[ChecklistItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "sub_phase": self.sub_phase.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "elapsed_sec": self.elapsed_sec,
            "downtime_offset_sec": self.downtime_offset_sec,
            "total_elapsed_sec": self.total_elapsed_sec,
            "cpr_cycle_anchor_sec": self.cpr_cycle_anchor_sec,
            "cpr_remaining_sec": self.cpr_remaining_sec,
            "shock_count": self.shock_count,
            "adrenaline_count": self.adrenaline_count,
            "amiodarone_count": self.amiodarone_count,
            "lidocaine_count": self.lidocaine_count,
            "airway_placed": self.airway_placed,
            "antiarrhythmic_class": self.antiarrhythmic_class.value,
            "last_adrenaline_at_sec": self.last_adrenaline_at_sec,
            "shock_count_at_first_amiodarone": self.shock_count_at_first_amiodarone,
            "hypothermia_grade": self.hypothermia_grade.value,
            "patient_age_category": (
                self.patient_age_category.value if self.patient_age_category else None
            ),
            "metronome_on": self.metronome_on,
            "is_adrenaline_available": self.is_adrenaline_available,
            "is_amiodarone_available": self.is_amiodarone_available,
            "is_lidocaine_available": self.is_lidocaine_available,
            "is_adrenaline_due": self.is_adrenaline_due,
            "is_adrenaline_due_soon": self.is_adrenaline_due_soon,
            "time_to_next_adrenaline_sec": self.time_to_next_adrenaline_sec,
            "should_show_amiodarone_reminder": self.should_show_amiodarone_reminder,
            "can_undo": self.can_undo,
            "ticker_running": self.ticker_running,
            "events": [e.to_dict() for e in self.events],
            "reversible_causes": [i.to_dict() for i in self.reversible_causes],
            "post_rosc_tasks": [i.to_dict() for i in self.post_rosc_tasks],
            "post_mortem_tasks": [i.to_dict() for i in self.post_mortem_tasks],
        }


StateListener = Callable[[SessionView], None]
FeedbackSink = Callable[[FeedbackCue], None]


# =============================================================================
# ARREST SESSION
# =============================================================================

class ArrestSession:
    """
    The arrest session state machine.

    One instance lives for the whole application and is reset between
    episodes, never replaced. All commands and ticks are serialised on a
    single re-entrant lock, so a ThreadTicker may tick from its own thread.
    """

    def __init__(
        self,
        settings: Union[SettingsProvider, ProtocolSettings] = None,
        clock: Clock = None,
        ticker: Ticker = None,
        archiver: "Archiver" = None,
        feedback: FeedbackSink = None,
    ):
        if settings is None:
            settings = SettingsProvider()
        elif isinstance(settings, ProtocolSettings):
            settings = SettingsProvider(settings)
        self.settings_provider = settings
        self.clock = clock or Clock()
        self.ticker = ticker or ThreadTicker(settings.current().tick_interval_sec)
        self.archiver = archiver
        self.feedback = feedback

        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._undo = UndoStack()
        self.event_log = EventLog(time_source=lambda: self.total_elapsed_sec)

        self._clear_state()

    def _clear_state(self):
        """Initial (post-reset) field values."""
        cycle = self.settings.cpr_cycle_duration_sec
        self.phase = ArrestPhase.PENDING
        self.sub_phase = SubPhase.DEFAULT
        self.started_at: Optional[datetime] = None
        self.elapsed_sec = 0.0
        self.downtime_offset_sec = 0.0
        self.cpr_cycle_anchor_sec = 0.0
        self.cpr_cycle_duration_sec = cycle
        self.cpr_remaining_sec = cycle
        self.shock_count = 0
        self.adrenaline_count = 0
        self.amiodarone_count = 0
        self.lidocaine_count = 0
        self.airway_placed = False
        self.antiarrhythmic_class = AntiarrhythmicClass.NONE
        self.last_adrenaline_at_sec: Optional[float] = None
        self.shock_count_at_first_amiodarone: Optional[int] = None
        self.reversible_causes = build_checklist(ChecklistKind.REVERSIBLE_CAUSES)
        self.post_rosc_tasks = build_checklist(ChecklistKind.POST_ROSC)
        self.post_mortem_tasks = build_checklist(ChecklistKind.POST_MORTEM)
        self.patient_age_category: Optional[PatientAgeCategory] = None
        self.metronome_on = False
        self.event_log.clear()
        self._undo.clear()
        self._archived = False

    # =========================================================================
    # DERIVED STATE
    # =========================================================================

    @property
    def settings(self) -> ProtocolSettings:
        return self.settings_provider.current()

    @property
    def total_elapsed_sec(self) -> float:
        return self.elapsed_sec + self.downtime_offset_sec

    @property
    def events(self) -> Tuple[Event, ...]:
        """Events newest-first."""
        return self.event_log.snapshot()

    @property
    def hypothermia_grade(self) -> HypothermiaGrade:
        for item in self.reversible_causes:
            if item.is_hypothermia:
                return item.hypothermia_grade
        return HypothermiaGrade.NONE

    @property
    def is_adrenaline_available(self) -> bool:
        return self.hypothermia_grade != HypothermiaGrade.SEVERE

    @property
    def is_amiodarone_available(self) -> bool:
        dose_due = (
            (self.shock_count >= 3 and self.amiodarone_count == 0)
            or (self.shock_count >= 5 and self.amiodarone_count == 1)
        )
        return (
            dose_due
            and self.antiarrhythmic_class != AntiarrhythmicClass.LIDOCAINE
            and self.is_adrenaline_available
        )

    @property
    def is_lidocaine_available(self) -> bool:
        dose_due = (
            (self.shock_count >= 3 and self.lidocaine_count == 0)
            or (self.shock_count >= 5 and self.lidocaine_count == 1)
        )
        return (
            dose_due
            and self.antiarrhythmic_class != AntiarrhythmicClass.AMIODARONE
            and self.is_adrenaline_available
        )

    @property
    def adrenaline_interval_sec(self) -> float:
        settings = self.settings
        interval = settings.adrenaline_interval_sec
        if self.hypothermia_grade == HypothermiaGrade.MODERATE:
            interval *= settings.hypothermia_interval_multiplier
        return interval

    @property
    def time_since_last_adrenaline_sec(self) -> Optional[float]:
        if self.last_adrenaline_at_sec is None:
            return None
        return self.total_elapsed_sec - self.last_adrenaline_at_sec

    @property
    def time_to_next_adrenaline_sec(self) -> float:
        since = self.time_since_last_adrenaline_sec
        if since is None:
            return 0.0
        return max(0.0, self.adrenaline_interval_sec - since)

    @property
    def is_adrenaline_due(self) -> bool:
        since = self.time_since_last_adrenaline_sec
        return since is not None and since >= self.adrenaline_interval_sec

    @property
    def is_adrenaline_due_soon(self) -> bool:
        if self.last_adrenaline_at_sec is None or self.is_adrenaline_due:
            return False
        return self.time_to_next_adrenaline_sec <= self.settings.adrenaline_due_soon_window_sec

    @property
    def should_show_amiodarone_reminder(self) -> bool:
        if self.shock_count_at_first_amiodarone is None:
            return False
        return (
            self.amiodarone_count == 1
            and self.shock_count >= self.shock_count_at_first_amiodarone + 2
        )

    @property
    def can_undo(self) -> bool:
        return self._undo.can_undo

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def checklist(self, kind: ChecklistKind) -> List[ChecklistItem]:
        if kind == ChecklistKind.REVERSIBLE_CAUSES:
            return self.reversible_causes
        elif kind == ChecklistKind.POST_ROSC:
            return self.post_rosc_tasks
        return self.post_mortem_tasks

    def state(self) -> SessionView:
        """Published state for renderers."""
        with self._lock:
            return SessionView(
                phase=self.phase,
                sub_phase=self.sub_phase,
                started_at=self.started_at,
                elapsed_sec=self.elapsed_sec,
                downtime_offset_sec=self.downtime_offset_sec,
                total_elapsed_sec=self.total_elapsed_sec,
                cpr_cycle_anchor_sec=self.cpr_cycle_anchor_sec,
                cpr_remaining_sec=self.cpr_remaining_sec,
                shock_count=self.shock_count,
                adrenaline_count=self.adrenaline_count,
                amiodarone_count=self.amiodarone_count,
                lidocaine_count=self.lidocaine_count,
                airway_placed=self.airway_placed,
                antiarrhythmic_class=self.antiarrhythmic_class,
                last_adrenaline_at_sec=self.last_adrenaline_at_sec,
                shock_count_at_first_amiodarone=self.shock_count_at_first_amiodarone,
                hypothermia_grade=self.hypothermia_grade,
                patient_age_category=self.patient_age_category,
                metronome_on=self.metronome_on,
                is_adrenaline_available=self.is_adrenaline_available,
                is_amiodarone_available=self.is_amiodarone_available,
                is_lidocaine_available=self.is_lidocaine_available,
                is_adrenaline_due=self.is_adrenaline_due,
                is_adrenaline_due_soon=self.is_adrenaline_due_soon,
                time_to_next_adrenaline_sec=self.time_to_next_adrenaline_sec,
                should_show_amiodarone_reminder=self.should_show_amiodarone_reminder,
                can_undo=self.can_undo,
                ticker_running=self.ticker.is_running,
                events=self.events,
                reversible_causes=copy_checklist(self.reversible_causes),
                post_rosc_tasks=copy_checklist(self.post_rosc_tasks),
                post_mortem_tasks=copy_checklist(self.post_mortem_tasks),
            )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with a SessionView after every change."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # =========================================================================
    # TICK
    # =========================================================================

    def tick(self):
        """
        Recompute timer-derived state from the wall clock.

        The CPR countdown only advances while ACTIVE in the DEFAULT sub-phase.
        Rollover is silent: no event is logged.
        """
        with self._lock:
            if self.started_at is None or not self.phase.is_timed():
                return

            settings = self.settings
            elapsed = (self.clock.now() - self.started_at).total_seconds()
            self.elapsed_sec = max(self.elapsed_sec, elapsed)

            if self.phase == ArrestPhase.ACTIVE and self.sub_phase == SubPhase.DEFAULT:
                self._update_cpr_countdown(settings)
                if 0 < self.cpr_remaining_sec <= settings.cpr_warning_window_sec:
                    self._cue(FeedbackCue.CPR_CYCLE_ENDING)
                if self.is_adrenaline_due:
                    self._cue(FeedbackCue.ADRENALINE_DUE)

            self._publish()

    def _update_cpr_countdown(self, settings: ProtocolSettings):
        total = self.total_elapsed_sec
        self.cpr_remaining_sec = self.cpr_cycle_duration_sec - (total - self.cpr_cycle_anchor_sec)
        if self.cpr_remaining_sec > 0:
            return

        # Rollover. Overshoot within one tick of jitter keeps the nominal cadence.
        overshoot = -self.cpr_remaining_sec
        if overshoot <= settings.rollover_tolerance_sec:
            self.cpr_cycle_anchor_sec = total - overshoot
        else:
            self.cpr_cycle_anchor_sec = total
        self.cpr_cycle_duration_sec = settings.cpr_cycle_duration_sec
        self.cpr_remaining_sec = self.cpr_cycle_duration_sec - (total - self.cpr_cycle_anchor_sec)
        logger.debug(f"CPR cycle rollover at {total:.1f}s (overshoot {overshoot:.2f}s)")

    # =========================================================================
    # PHASE COMMANDS
    # =========================================================================

    def start_arrest(self) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.PENDING:
                return self._ignored("start_arrest", f"phase is {self.phase.value}")
            self._save_for_undo()
            self.started_at = self.clock.now()
            self.elapsed_sec = 0.0
            self.phase = ArrestPhase.ACTIVE
            self.sub_phase = SubPhase.DEFAULT
            self._start_cpr_cycle(log_event=False)
            self.event_log.record(
                f"Arrest Started at {self.started_at:%H:%M:%S}", EventCategory.STATUS
            )
            self.ticker.start(self.tick)
            logger.info(f"Arrest started at {self.started_at:%Y-%m-%d %H:%M:%S}")
            self._cue(FeedbackCue.ACTION_CONFIRMED)
            return self._done()

    def achieve_rosc(self) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.ACTIVE:
                return self._ignored("achieve_rosc", f"phase is {self.phase.value}")
            self._save_for_undo()
            self.phase = ArrestPhase.ROSC
            self.sub_phase = SubPhase.DEFAULT
            self.event_log.record("Return of Spontaneous Circulation (ROSC)", EventCategory.STATUS)
            logger.info(f"ROSC at {self.total_elapsed_sec:.0f}s")
            self._cue(FeedbackCue.ACTION_CONFIRMED)
            return self._done()

    def re_arrest(self) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.ROSC:
                return self._ignored("re_arrest", f"phase is {self.phase.value}")
            self._save_for_undo()
            self.phase = ArrestPhase.ACTIVE
            self.sub_phase = SubPhase.DEFAULT
            self._start_cpr_cycle()
            self.event_log.record("Patient Re-Arrested. CPR Resumed.", EventCategory.STATUS)
            logger.info(f"Re-arrest at {self.total_elapsed_sec:.0f}s")
            return self._done()

    def end_arrest(self) -> bool:
        with self._lock:
            if not self.phase.is_timed():
                return self._ignored("end_arrest", f"phase is {self.phase.value}")
            self._save_for_undo()
            self.phase = ArrestPhase.ENDED
            self.sub_phase = SubPhase.DEFAULT
            self.ticker.stop()
            self.event_log.record("Arrest Ended (Patient Deceased)", EventCategory.STATUS)
            logger.info(f"Arrest ended at {self.total_elapsed_sec:.0f}s")
            return self._done()

    # =========================================================================
    # RHYTHM CYCLE COMMANDS
    # =========================================================================

    def analyse_rhythm(self) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.ACTIVE or self.sub_phase != SubPhase.DEFAULT:
                return self._ignored("analyse_rhythm", "not in an active CPR cycle")
            self._save_for_undo()
            self.sub_phase = SubPhase.ANALYZING
            self.event_log.record("Rhythm Analysis Paused", EventCategory.ANALYSIS)
            return self._done()

    def log_rhythm(self, rhythm: str, shockable: bool) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.ACTIVE or self.sub_phase != SubPhase.ANALYZING:
                return self._ignored("log_rhythm", "no rhythm analysis in progress")
            rhythm = (rhythm or "").strip()
            if not rhythm:
                return self._ignored("log_rhythm", "empty rhythm name")
            self._save_for_undo()
            self.event_log.record(f"Rhythm is {rhythm}", EventCategory.RHYTHM)
            if shockable:
                self.sub_phase = SubPhase.SHOCK_ADVISED
            else:
                self.sub_phase = SubPhase.DEFAULT
                self._start_cpr_cycle()
            return self._done()

    def deliver_shock(self) -> bool:
        with self._lock:
            if self.phase != ArrestPhase.ACTIVE or self.sub_phase != SubPhase.SHOCK_ADVISED:
                return self._ignored("deliver_shock", "no shock advised")
            self._save_for_undo()
            self.shock_count += 1
            self.event_log.record(
                f"Shock {self.shock_count} Delivered. Resuming CPR.", EventCategory.SHOCK
            )
            self.sub_phase = SubPhase.DEFAULT
            self._start_cpr_cycle()
            return self._done()

    def resume_cpr(self) -> bool:
        """Explicitly restart compressions with a fresh, logged CPR cycle."""
        with self._lock:
            if self.phase != ArrestPhase.ACTIVE:
                return self._ignored("resume_cpr", f"phase is {self.phase.value}")
            self._save_for_undo()
            self.sub_phase = SubPhase.DEFAULT
            self._start_cpr_cycle()
            return self._done()

    # =========================================================================
    # LOGGING COMMANDS
    # =========================================================================

    def log_adrenaline(self, dose: Optional[str] = None) -> bool:
        with self._lock:
            self._save_for_undo()
            self.adrenaline_count += 1
            self.last_adrenaline_at_sec = self.total_elapsed_sec
            dose = dose or self._default_dose(Drug.ADRENALINE, self.adrenaline_count)
            self.event_log.record(
                self._drug_message("Adrenaline", dose, self.adrenaline_count), EventCategory.DRUG
            )
            return self._done()

    def log_amiodarone(self, dose: Optional[str] = None) -> bool:
        with self._lock:
            self._save_for_undo()
            self.amiodarone_count += 1
            if self.amiodarone_count == 1:
                self.shock_count_at_first_amiodarone = self.shock_count
            if self.antiarrhythmic_class == AntiarrhythmicClass.NONE:
                self.antiarrhythmic_class = AntiarrhythmicClass.AMIODARONE
            dose = dose or self._default_dose(Drug.AMIODARONE, self.amiodarone_count)
            self.event_log.record(
                self._drug_message("Amiodarone", dose, self.amiodarone_count), EventCategory.DRUG
            )
            return self._done()

    def log_lidocaine(self, dose: Optional[str] = None) -> bool:
        with self._lock:
            self._save_for_undo()
            self.lidocaine_count += 1
            if self.antiarrhythmic_class == AntiarrhythmicClass.NONE:
                self.antiarrhythmic_class = AntiarrhythmicClass.LIDOCAINE
            self.event_log.record(
                self._drug_message("Lidocaine", dose, self.lidocaine_count), EventCategory.DRUG
            )
            return self._done()

    def log_other_drug(self, name: str, dose: Optional[str] = None) -> bool:
        with self._lock:
            name = (name or "").strip()
            if not name:
                return self._ignored("log_other_drug", "empty drug name")
            self._save_for_undo()
            label = f"{name} ({dose})" if dose else name
            self.event_log.record(f"{label} Given", EventCategory.DRUG)
            return self._done()

    def log_airway_placed(self) -> bool:
        with self._lock:
            if self.airway_placed:
                return self._ignored("log_airway_placed", "airway already placed")
            self._save_for_undo()
            self.airway_placed = True
            self.event_log.record("Advanced Airway Placed", EventCategory.AIRWAY)
            return self._done()

    def log_etco2(self, value: Union[str, int]) -> bool:
        """Log an ETCO2 reading. Anything but a positive integer is dropped."""
        with self._lock:
            text = str(value).strip()
            if not (text.isascii() and text.isdigit()):
                return self._ignored("log_etco2", f"not a number: {value!r}")
            reading = int(text)
            if reading <= 0:
                return self._ignored("log_etco2", f"not positive: {reading}")
            self._save_for_undo()
            self.event_log.record(f"ETCO2: {reading} mmHg", EventCategory.ETCO2)
            return self._done()

    def toggle_checklist_item(self, item_id: str) -> bool:
        with self._lock:
            found = self._find_checklist_item(item_id)
            if found is None:
                return self._ignored("toggle_checklist_item", f"unknown item {item_id}")
            kind, index = found
            self._save_for_undo()
            item = self.checklist(kind)[index]
            item.is_completed = not item.is_completed
            state = "complete" if item.is_completed else "incomplete"
            category = EventCategory.CAUSE if kind == ChecklistKind.REVERSIBLE_CAUSES else EventCategory.STATUS
            self.event_log.record(f"{item.name} marked {state}", category)
            return self._done()

    def set_hypothermia_grade(self, grade: HypothermiaGrade) -> bool:
        with self._lock:
            item = next((i for i in self.reversible_causes if i.is_hypothermia), None)
            if item is None:
                return self._ignored("set_hypothermia_grade", "no Hypothermia item")
            self._save_for_undo()
            item.hypothermia_grade = grade
            item.is_completed = grade != HypothermiaGrade.NONE
            self.event_log.record(HYPOTHERMIA_MESSAGES[grade], EventCategory.CAUSE)
            return self._done()

    def add_downtime_offset(self, seconds: float) -> bool:
        """
        Add pre-arrival or missed time to the total.

        The CPR anchor stays where the current cycle began, so added time
        counts against the running cycle as well as the drug intervals.
        While PENDING only the offset accumulates; start_arrest anchors the
        first cycle after it.
        """
        with self._lock:
            if seconds is None or seconds <= 0:
                return self._ignored("add_downtime_offset", f"non-positive offset {seconds}")
            self._save_for_undo()
            self.downtime_offset_sec += seconds
            if self.phase == ArrestPhase.ACTIVE and self.sub_phase == SubPhase.DEFAULT:
                self._update_cpr_countdown(self.settings)
            self.event_log.record(f"Time offset added: +{self._offset_label(seconds)}", EventCategory.STATUS)
            return self._done()

    def set_patient_age_category(self, category: Optional[PatientAgeCategory]) -> None:
        """
        Select the patient age band used for default doses.

        A selection rather than a clinical action: not undoable, not logged.
        """
        with self._lock:
            self.patient_age_category = category
            logger.info(f"Patient age category: {category.value if category else 'unset'}")
            self._publish()

    def toggle_metronome(self) -> bool:
        """Flip the metronome on/off flag. Playback belongs to the host; reset turns it off."""
        with self._lock:
            self.metronome_on = not self.metronome_on
            logger.info(f"Metronome {'on' if self.metronome_on else 'off'} at {self.settings.metronome_bpm:.0f} BPM")
            self._publish()
            return self.metronome_on

    # =========================================================================
    # UNDO / RESET / ARCHIVE
    # =========================================================================

    def undo(self) -> bool:
        """Restore the state before the most recent command. Not itself undoable."""
        with self._lock:
            snapshot = self._undo.pop()
            if snapshot is None:
                logger.warning("Nothing to undo")
                return False
            self._restore(snapshot)
            if self.phase.is_timed():
                if not self.ticker.is_running:
                    self.ticker.start(self.tick)
            else:
                self.ticker.stop()
            logger.info(f"Undo: restored phase {self.phase.value}, {len(self._undo)} steps remain")
            self._publish()
            return True

    def save_log(self) -> bool:
        """Archive the current episode now. At most once per generation."""
        with self._lock:
            if self._archived or self.started_at is None or len(self.event_log) == 0:
                return False
            self._archive()
            return True

    def perform_reset(self, save_log: bool = True, export_summary: bool = False) -> Optional[str]:
        """
        Finalise (optionally archive) and return to PENDING.

        Returns:
            The export summary captured before clearing, if requested
        """
        with self._lock:
            summary = self.summary_text() if export_summary else None
            if save_log and not self._archived and self.started_at is not None and len(self.event_log) > 0:
                self._archive()

            self.ticker.stop()
            self._clear_state()
            logger.info("Session reset")
            self._cue(FeedbackCue.RESET)
            self._publish()
            return summary

    def summary_text(self) -> str:
        with self._lock:
            return build_summary(self.event_log, self.total_elapsed_sec)

    def _archive(self):
        outcome = Outcome.from_phase(self.phase)
        self._archived = True
        if self.archiver is None:
            logger.debug("No archiver configured, episode not saved")
            return
        try:
            self.archiver.save(
                started_at=self.started_at,
                total_duration_sec=self.total_elapsed_sec,
                outcome=outcome,
                events=self.event_log.snapshot(),
                ended_at=self.clock.now(),
            )
        except Exception:
            # Storage faults must never block the reset
            logger.exception("Archiver failed; continuing with in-memory reset")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self.phase,
            sub_phase=self.sub_phase,
            started_at=self.started_at,
            elapsed_sec=self.elapsed_sec,
            downtime_offset_sec=self.downtime_offset_sec,
            cpr_cycle_anchor_sec=self.cpr_cycle_anchor_sec,
            cpr_cycle_duration_sec=self.cpr_cycle_duration_sec,
            cpr_remaining_sec=self.cpr_remaining_sec,
            shock_count=self.shock_count,
            adrenaline_count=self.adrenaline_count,
            amiodarone_count=self.amiodarone_count,
            lidocaine_count=self.lidocaine_count,
            airway_placed=self.airway_placed,
            antiarrhythmic_class=self.antiarrhythmic_class,
            last_adrenaline_at_sec=self.last_adrenaline_at_sec,
            shock_count_at_first_amiodarone=self.shock_count_at_first_amiodarone,
            events=self.event_log.snapshot(),
            reversible_causes=copy_checklist(self.reversible_causes),
            post_rosc_tasks=copy_checklist(self.post_rosc_tasks),
            post_mortem_tasks=copy_checklist(self.post_mortem_tasks),
        )

    def _restore(self, s: SessionSnapshot):
        self.phase = s.phase
        self.sub_phase = s.sub_phase
        self.started_at = s.started_at
        self.elapsed_sec = s.elapsed_sec
        self.downtime_offset_sec = s.downtime_offset_sec
        self.cpr_cycle_anchor_sec = s.cpr_cycle_anchor_sec
        self.cpr_cycle_duration_sec = s.cpr_cycle_duration_sec
        self.cpr_remaining_sec = s.cpr_remaining_sec
        self.shock_count = s.shock_count
        self.adrenaline_count = s.adrenaline_count
        self.amiodarone_count = s.amiodarone_count
        self.lidocaine_count = s.lidocaine_count
        self.airway_placed = s.airway_placed
        self.antiarrhythmic_class = s.antiarrhythmic_class
        self.last_adrenaline_at_sec = s.last_adrenaline_at_sec
        self.shock_count_at_first_amiodarone = s.shock_count_at_first_amiodarone
        self.event_log.restore(s.events)
        self.reversible_causes = list(copy_checklist(s.reversible_causes))
        self.post_rosc_tasks = list(copy_checklist(s.post_rosc_tasks))
        self.post_mortem_tasks = list(copy_checklist(s.post_mortem_tasks))

    def _save_for_undo(self):
        self._undo.push(self._snapshot())

    def _start_cpr_cycle(self, log_event: bool = True):
        cycle = self.settings.cpr_cycle_duration_sec
        self.cpr_cycle_anchor_sec = self.total_elapsed_sec
        self.cpr_cycle_duration_sec = cycle
        self.cpr_remaining_sec = cycle
        if log_event:
            self.event_log.record("New CPR Cycle Started", EventCategory.CPR)
            self._cue(FeedbackCue.ACTION_CONFIRMED)

    def _find_checklist_item(self, item_id: str) -> Optional[Tuple[ChecklistKind, int]]:
        for kind in ChecklistKind:
            for index, item in enumerate(self.checklist(kind)):
                if item.id == item_id:
                    return kind, index
        return None

    def _default_dose(self, drug: Drug, dose_ordinal: int) -> Optional[str]:
        age = self.patient_age_category or PatientAgeCategory.ADULT
        return dose_for(drug, age, dose_ordinal)

    @staticmethod
    def _drug_message(drug: str, dose: Optional[str], dose_number: int) -> str:
        label = f"{drug} ({dose})" if dose else drug
        return f"{label} Given - Dose {dose_number}"

    @staticmethod
    def _offset_label(seconds: float) -> str:
        if seconds % 60 == 0:
            return f"{int(seconds // 60)} min"
        return f"{int(seconds)}s"

    def _ignored(self, command: str, reason: str) -> bool:
        logger.debug(f"Ignored {command}: {reason}")
        return False

    def _done(self) -> bool:
        self._publish()
        return True

    def _publish(self):
        if not self._listeners:
            return
        view = self.state()
        for listener in list(self._listeners):
            listener(view)

    def _cue(self, cue: FeedbackCue):
        if self.feedback is not None:
            self.feedback(cue)
