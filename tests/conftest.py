# tests/conftest.py
# Pytest-Konfiguration und gemeinsame Fixtures
import pytest

from advisor.models import MonitorConfig
from advisor.monitor import TrafficMonitor

# Fester Startzeitpunkt (Epoch-ms) für deterministische Tests
START_MS = 1_700_000_000_000


class FakeClock:
    """Steuerbare Uhr in Epoch-Millisekunden."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now_ms = now_ms

    def advance(self, delta_ms: int) -> None:
        self.now_ms += delta_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def clock():
    """Uhr auf START_MS."""
    return FakeClock()


@pytest.fixture
def monitor(clock):
    """TrafficMonitor mit Standardkonfiguration und steuerbarer Uhr."""
    return TrafficMonitor(MonitorConfig(), clock=clock)
