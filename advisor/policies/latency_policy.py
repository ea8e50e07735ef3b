# advisor/policies/latency_policy.py
# Latenz-Drift: Durchschnitt der letzten 5 Antworten gegen den Fensterdurchschnitt
from __future__ import annotations

from typing import Sequence

from ..models import TrafficObservation

# Mindestanzahl Messungen für ein Signal
MIN_SAMPLES = 5
# Fenstergröße: letzte N Antworten für den aktuellen Durchschnitt
RECENT_SAMPLES = 5
# Aktueller Durchschnitt muss mehr als das Doppelte betragen
DEGRADATION_FACTOR = 2


class LatencyPolicy:
    """
    Grobe Verdopplungs-Heuristik, kein statistischer Test.
    Ein einzelner Ausreißer unter den letzten 5 Messungen kann bereits auslösen.
    """

    def average_latency(self, observations: Sequence[TrafficObservation]) -> float:
        """Mittlere Antwortzeit in ms (0.0 wenn keine Messungen vorhanden)."""
        if not observations:
            return 0.0
        return sum(item.response_time for item in observations) / len(observations)

    def is_degraded(self, observations: Sequence[TrafficObservation]) -> bool:
        """True wenn der Durchschnitt der letzten 5 Antworten > 2× Fensterdurchschnitt."""
        if len(observations) < MIN_SAMPLES:
            return False
        overall = self.average_latency(observations)
        recent = self.average_latency(observations[-RECENT_SAMPLES:])
        return recent > overall * DEGRADATION_FACTOR
