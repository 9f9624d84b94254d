"""
Unit tests for protocol settings, checklists and tickers.

Tests for:
- Settings validation and clamping
- Live settings provider updates
- Checklist templates
- ThreadTicker / ManualTicker lifecycle
"""

import logging
import threading
import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from config.checklists import (
    OTHER_MEDICATIONS,
    POST_MORTEM_TASKS,
    POST_ROSC_TASKS,
    REVERSIBLE_CAUSES,
    build_checklist,
    is_shockable,
)
from config.protocol_settings import ProtocolSettings, SettingsProvider
from data.contracts import ChecklistKind, HYPOTHERMIA_ITEM_NAME
from session.ticker import ManualTicker, ThreadTicker


# =============================================================================
# SETTINGS
# =============================================================================

class TestProtocolSettings:
    """Tests for ProtocolSettings validation."""

    def test_defaults(self):
        settings = ProtocolSettings().validate()
        assert settings.cpr_cycle_duration_sec == 120
        assert settings.adrenaline_interval_sec == 240
        assert settings.metronome_bpm == 110

    def test_out_of_range_is_clamped(self, caplog):
        with caplog.at_level(logging.WARNING):
            settings = ProtocolSettings(cpr_cycle_duration_sec=30, metronome_bpm=200).validate()

        assert settings.cpr_cycle_duration_sec == 60
        assert settings.metronome_bpm == 140
        assert "outside recognised range" in caplog.text

    def test_non_positive_rejected(self):
        with pytest.raises(ValueError):
            ProtocolSettings(adrenaline_interval_sec=0).validate()

    def test_multiplier_is_fixed(self):
        settings = ProtocolSettings(hypothermia_interval_multiplier=3.0).validate()
        assert settings.hypothermia_interval_multiplier == 2.0

    def test_from_dict_ignores_unknown_keys(self):
        settings = ProtocolSettings.from_dict({"cpr_cycle_duration_sec": 90, "theme": "dark"})
        assert settings.cpr_cycle_duration_sec == 90
        assert settings.adrenaline_interval_sec == 240

    def test_dict_round_trip(self):
        settings = ProtocolSettings(cpr_cycle_duration_sec=150)
        assert ProtocolSettings.from_dict(settings.to_dict()) == settings


class TestSettingsProvider:
    """Tests for the live settings source."""

    def test_update(self):
        provider = SettingsProvider()
        provider.update(adrenaline_interval_sec=300)
        assert provider.current().adrenaline_interval_sec == 300

    def test_update_is_validated(self):
        provider = SettingsProvider()
        provider.update(cpr_cycle_duration_sec=1000)
        assert provider.current().cpr_cycle_duration_sec == 300

    def test_constructor_validates(self):
        provider = SettingsProvider(ProtocolSettings(adrenaline_interval_sec=60))
        assert provider.current().adrenaline_interval_sec == 120


# =============================================================================
# CHECKLISTS
# =============================================================================

class TestChecklists:
    """Tests for checklist templates."""

    def test_template_sizes(self):
        assert len(REVERSIBLE_CAUSES) == 8
        assert len(POST_ROSC_TASKS) == 6
        assert len(POST_MORTEM_TASKS) == 7

    def test_hypothermia_item_present(self):
        assert HYPOTHERMIA_ITEM_NAME in REVERSIBLE_CAUSES

    def test_build_is_fresh(self):
        first = build_checklist(ChecklistKind.REVERSIBLE_CAUSES)
        second = build_checklist(ChecklistKind.REVERSIBLE_CAUSES)

        assert [i.name for i in first] == [i.name for i in second]
        assert {i.id for i in first}.isdisjoint({i.id for i in second})
        assert not any(i.is_completed for i in first)

    def test_other_medications_spelling(self):
        assert "Hartmann’s solution" in OTHER_MEDICATIONS
        assert list(OTHER_MEDICATIONS) == sorted(OTHER_MEDICATIONS)

    @pytest.mark.parametrize("rhythm, shockable", [
        ("VF", True),
        ("VT", True),
        ("PEA", False),
        ("Asystole", False),
    ])
    def test_shockable_rhythms(self, rhythm, shockable):
        assert is_shockable(rhythm) == shockable


# =============================================================================
# TICKERS
# =============================================================================

class TestManualTicker:
    """Tests for ManualTicker."""

    def test_fires_only_while_running(self):
        ticker = ManualTicker()
        calls = []

        ticker.fire()
        ticker.start(lambda: calls.append(1))
        ticker.fire(3)
        ticker.stop()
        ticker.fire()

        assert len(calls) == 3
        assert not ticker.is_running

    def test_restart_replaces_callback(self):
        ticker = ManualTicker()
        first, second = [], []

        ticker.start(lambda: first.append(1))
        ticker.start(lambda: second.append(1))
        ticker.fire()

        assert first == [] and second == [1]
        assert ticker.start_count == 2


class TestThreadTicker:
    """Tests for ThreadTicker."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ThreadTicker(0)

    def test_ticks_until_stopped(self):
        ticker = ThreadTicker(interval_sec=0.01)
        fired = threading.Event()

        ticker.start(fired.set)
        try:
            assert fired.wait(2.0)
            assert ticker.is_running
        finally:
            ticker.stop()

        assert not ticker.is_running

    def test_restart_cancels_previous(self):
        ticker = ThreadTicker(interval_sec=0.01)
        ticker.start(lambda: None)
        first_cancel = ticker._cancel

        ticker.start(lambda: None)
        try:
            assert first_cancel.is_set()
            assert ticker.is_running
        finally:
            ticker.stop()

    def test_stop_when_idle(self):
        ticker = ThreadTicker()
        ticker.stop()
        assert not ticker.is_running

    def test_failing_callback_keeps_ticking(self, caplog):
        ticker = ThreadTicker(interval_sec=0.01)
        calls = []
        ticked_again = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("listener failed")
            ticked_again.set()

        with caplog.at_level(logging.ERROR):
            ticker.start(callback)
            try:
                assert ticked_again.wait(2.0)
                assert ticker.is_running
            finally:
                ticker.stop()

        assert len(calls) > 1
        assert "Tick callback failed" in caplog.text
