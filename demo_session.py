"""
End-to-End Demo Script for the Resuscitation Tracker

This script walks a scripted episode through the session:
1. Protocol settings and dose tables
2. Arrest start and CPR cycle countdown
3. Rhythm checks, shocks and drug eligibility
4. ROSC, re-arrest and undo
5. Reset, archive and logbook export

Time is virtual (ManualClock/ManualTicker) so the demo runs instantly.
"""

import logging
import os
import sys
import tempfile

# Add src to path
script_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.join(script_dir, 'src')
sys.path.insert(0, src_dir)

from archive import InMemoryLogbook
from config import ProtocolSettings, SettingsProvider
from data import HypothermiaGrade
from dosage import Drug, PatientAgeCategory, category_for_age, dose_for
from session import ArrestSession, ManualClock, ManualTicker, format_time


def print_section(title: str):
    """Print a section header."""
    print("\n" + "=" * 60)
    print(f" {title}")
    print("=" * 60)


def print_state(session: ArrestSession):
    view = session.state()
    print(f"  Phase: {view.phase.value} / {view.sub_phase.value}")
    print(f"  Total time: {format_time(view.total_elapsed_sec)}"
          f"  CPR remaining: {format_time(view.cpr_remaining_sec)}")
    print(f"  Shocks: {view.shock_count}  Adrenaline: {view.adrenaline_count}"
          f"  Amiodarone: {view.amiodarone_count}")


class Demo:
    """Scripted episode on virtual time."""

    def __init__(self):
        self.clock = ManualClock()
        self.ticker = ManualTicker()
        self.logbook = InMemoryLogbook()
        self.settings = SettingsProvider(ProtocolSettings())
        self.cues = []
        self.session = ArrestSession(
            settings=self.settings,
            clock=self.clock,
            ticker=self.ticker,
            archiver=self.logbook,
            feedback=self.cues.append,
        )

    def advance(self, seconds: int):
        for _ in range(seconds):
            self.clock.advance(1)
            self.ticker.fire()

    def shock_cycle(self, rhythm: str = "VF"):
        self.session.analyse_rhythm()
        self.session.log_rhythm(rhythm, shockable=True)
        self.session.deliver_shock()


def demo_settings_and_doses():
    """Demo: Protocol settings and age-based dose tables."""
    print_section("1. SETTINGS & DOSE TABLES")

    try:
        settings = ProtocolSettings(cpr_cycle_duration_sec=30).validate()
        print(f"CPR cycle (clamped): {settings.cpr_cycle_duration_sec}s")
        print(f"Adrenaline interval: {settings.adrenaline_interval_sec}s")

        for months in (6, 30, 200):
            category = category_for_age(months)
            print(f"  {months:>3} months -> {category.value}: "
                  f"adrenaline {dose_for(Drug.ADRENALINE, category)}, "
                  f"amiodarone {dose_for(Drug.AMIODARONE, category)}")

        newborn = dose_for(Drug.AMIODARONE, PatientAgeCategory.AT_BIRTH)
        print(f"  At birth amiodarone: {newborn or 'manual entry'}")

        print("✅ Settings and dose tables working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_episode(demo: Demo):
    """Demo: A shockable arrest through to ROSC."""
    print_section("2. SHOCKABLE ARREST")

    try:
        session = demo.session
        session.add_downtime_offset(300)
        session.start_arrest()
        demo.advance(90)
        print_state(session)

        demo.advance(30)
        demo.shock_cycle()
        session.log_adrenaline()
        demo.advance(120)
        demo.shock_cycle()
        demo.advance(120)
        demo.shock_cycle("VT")
        print(f"Amiodarone available: {session.is_amiodarone_available}")
        session.log_amiodarone()
        print(f"Lidocaine locked out: {not session.is_lidocaine_available}")

        session.set_hypothermia_grade(HypothermiaGrade.MODERATE)
        print(f"Adrenaline interval (moderate hypothermia): {session.adrenaline_interval_sec:.0f}s")

        session.log_airway_placed()
        session.log_etco2("35")
        demo.advance(60)
        session.achieve_rosc()
        print_state(session)

        print(f"Feedback cues emitted: {len(demo.cues)}")
        print("✅ Episode working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_undo(demo: Demo):
    """Demo: Undo walks back through snapshots."""
    print_section("3. UNDO")

    try:
        session = demo.session
        session.re_arrest()
        print(f"After re-arrest: {session.phase.value}")
        session.undo()
        print(f"After undo: {session.phase.value} (undo depth {session.undo_depth})")

        print("✅ Undo working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_reset_and_logbook(demo: Demo):
    """Demo: Reset archives the episode; logbook tabulates and exports."""
    print_section("4. RESET & LOGBOOK")

    try:
        summary = demo.session.perform_reset(save_log=True, export_summary=True)
        print(summary)

        print(demo.logbook.to_dataframe()[["started_at", "duration", "outcome", "n_events"]])
        print(f"Outcomes: {demo.logbook.outcome_counts()}")

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logbook.csv")
            print(f"CSV export: {demo.logbook.export_csv(path)}")

        print("✅ Reset and logbook working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("\n" + "=" * 60)
    print(" RESUSCITATION TRACKER - END-TO-END DEMO")
    print("=" * 60)

    demo = Demo()
    results = {
        "Settings & doses": demo_settings_and_doses(),
        "Episode": demo_episode(demo),
        "Undo": demo_undo(demo),
        "Reset & logbook": demo_reset_and_logbook(demo),
    }

    print_section("SUMMARY")
    for name, ok in results.items():
        print(f"  {'✅' if ok else '❌'} {name}")

    passed = sum(results.values())
    print(f"\n{passed}/{len(results)} demos passed")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    sys.exit(main())
