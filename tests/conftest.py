"""
pytest configuration and shared fixtures.

Sessions are built on a ManualClock and ManualTicker so every test
controls time explicitly.
"""

import pytest
import sys
import os

# Add src to path for all tests
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from archive.logbook import InMemoryLogbook
from config.protocol_settings import ProtocolSettings, SettingsProvider
from session.arrest_session import ArrestSession
from session.clock import ManualClock
from session.ticker import ManualTicker


# =============================================================================
# CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def settings_provider():
    """Default adult protocol timings."""
    return SettingsProvider(ProtocolSettings())


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def logbook():
    return InMemoryLogbook()


@pytest.fixture
def cues():
    """Collects feedback cues emitted by the session."""
    return []


@pytest.fixture
def session(settings_provider, clock, ticker, logbook, cues):
    """A PENDING session wired to virtual time and an in-memory logbook."""
    return ArrestSession(
        settings=settings_provider,
        clock=clock,
        ticker=ticker,
        archiver=logbook,
        feedback=cues.append,
    )


@pytest.fixture
def active_session(session):
    """A session with the arrest already started."""
    session.start_arrest()
    return session


@pytest.fixture
def advance(clock, ticker):
    """Advance virtual time one second at a time, ticking after each second."""
    def _advance(seconds: int):
        for _ in range(seconds):
            clock.advance(1)
            ticker.fire()
    return _advance


@pytest.fixture
def shocked_session(active_session):
    """An active session with `n` shocks delivered, built on demand."""
    def _shock(n: int):
        for _ in range(n):
            active_session.analyse_rhythm()
            active_session.log_rhythm("VF", shockable=True)
            active_session.deliver_shock()
        return active_session
    return _shock
