# advisor/policies/risk_policy.py
# Risiko-Aggregation: Risikostufe, Konfidenz und alternative Endpunkte
from __future__ import annotations

from typing import Sequence

from ..models import DEFAULT_RATE_LIMIT_THRESHOLD, RateLimitSnapshot, RiskLevel, TrafficObservation

CONFIDENCE_PER_OBSERVATION = 10
CONFIDENCE_CAP = 95
RATE_LIMIT_HEADER_BONUS = 5  # wird NACH der Kappung addiert


class RiskPolicy:
    """
    Faltet die booleschen Einzelsignale zu einem Ergebnis zusammen.

    Risikostufe per Zählung ohne Gewichtung:
    - >= 2 Signale → high
    - 1 Signal     → medium
    - 0 Signale    → low
    """

    def __init__(
        self,
        rate_limit_threshold: float = DEFAULT_RATE_LIMIT_THRESHOLD,
        api_url: str | None = None,
    ) -> None:
        self._threshold = rate_limit_threshold
        self._api_url = api_url

    def risk_level(
        self,
        rate_limit_approaching: bool,
        predicted_failure: bool,
        latency_degraded: bool,
    ) -> RiskLevel:
        signals = sum(
            1 for flag in (rate_limit_approaching, predicted_failure, latency_degraded) if flag
        )
        if signals >= 2:
            return RiskLevel.HIGH
        if signals == 1:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def is_rate_limit_approaching(self, snapshot: RateLimitSnapshot) -> bool:
        """True wenn remaining < limit × Schwellenwert / 100 (Standard: 80% verbraucht)."""
        return snapshot.remaining < snapshot.limit * self._threshold / 100

    def confidence(
        self, observations: Sequence[TrafficObservation], has_rate_limit_headers: bool
    ) -> int:
        """
        Konfidenz wächst mit der Datenmenge: min(n × 10, 95).
        Bonus +5 bei Rate-Limit-Headern: ohne erneute Kappung (95 + 5 = 100).
        """
        value = min(len(observations) * CONFIDENCE_PER_OBSERVATION, CONFIDENCE_CAP)
        if has_rate_limit_headers:
            value += RATE_LIMIT_HEADER_BONUS
        return value

    def suggest_alternatives(
        self, endpoint: str, observations: Sequence[TrafficObservation]
    ) -> list[str]:
        """
        Alternative Endpunkte in fester Reihenfolge (keine Deduplizierung):
        1. /v1/ → /v2/ (erstes Vorkommen)
        2. Basis-URL + Endpunkt (falls api_url konfiguriert)
        3. Endpunkt?cached=true (immer)
        4. Endpunkt?fallback=true (wenn erste Beobachtung ein GET war)
        """
        alternatives: list[str] = []

        if "/v1/" in endpoint:
            alternatives.append(endpoint.replace("/v1/", "/v2/", 1))

        if self._api_url:
            base_url = self._api_url.removesuffix("/")
            alternatives.append(f"{base_url}{endpoint}")

        alternatives.append(f"{endpoint}?cached=true")

        if observations and observations[0].method == "GET":
            alternatives.append(f"{endpoint.removesuffix('/')}?fallback=true")

        return alternatives
