# advisor/policies/failure_policy.py
# Fehlervorhersage: Fehlerquote im Fenster (>30%) oder in den letzten 10 Anfragen (>50%)
from __future__ import annotations

from typing import Sequence

from ..models import TrafficObservation

ERROR_STATUS_MIN = 400                # 4xx und 5xx zählen als Fehler
OVERALL_ERROR_RATE_THRESHOLD = 0.30   # Fehlerquote über das gesamte Fenster
RECENT_WINDOW_SIZE = 10               # Letzte N Anfragen für den Trend
RECENT_ERROR_RATE_THRESHOLD = 0.50    # Fehlerquote der letzten N Anfragen


class FailurePolicy:
    """
    Zwei unabhängige Auslöser, jeder für sich ausreichend:
    - Fehlerquote über alle Beobachtungen > 30%
    - Fehlerquote der letzten 10 Beobachtungen > 50%
    Schwellenwerte sind strikt: genau 30% löst nicht aus.
    """

    def error_rate(self, observations: Sequence[TrafficObservation]) -> float:
        """Anteil der Antworten mit Status >= 400 (0.0 ohne Daten)."""
        if not observations:
            return 0.0
        errors = sum(1 for item in observations if item.status_code >= ERROR_STATUS_MIN)
        return errors / len(observations)

    def predict_failure(self, observations: Sequence[TrafficObservation]) -> bool:
        # Keine Daten → keine Vorhersage
        if not observations:
            return False

        if self.error_rate(observations) > OVERALL_ERROR_RATE_THRESHOLD:
            return True

        recent = observations[-RECENT_WINDOW_SIZE:]
        return self.error_rate(recent) > RECENT_ERROR_RATE_THRESHOLD
