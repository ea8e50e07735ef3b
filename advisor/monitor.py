# advisor/monitor.py
# Vorhersagemaschine: Ledger filtern → Rate-Limit, Fehler, Latenz → Risiko-Aggregation
from __future__ import annotations

import logging

from .ledger import Clock, TrafficLedger, wall_clock_ms
from .metrics import PREDICTION_CONFIDENCE, PREDICTIONS_TOTAL
from .models import (
    EndpointStats,
    MonitorConfig,
    PredictionResult,
    RiskLevel,
    TrafficObservation,
)
from .policies.failure_policy import FailurePolicy
from .policies.latency_policy import LatencyPolicy
from .policies.rate_limit_policy import RateLimitPolicy
from .policies.risk_policy import RiskPolicy

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000


class TrafficMonitor:
    """
    Zentrales Modul: nimmt Beobachtungen entgegen und berechnet Vorhersagen.

    Ablauf einer Vorhersage:
    1. Ledger auf den Endpunkt filtern
    2. Rate-Limit-Snapshot aus der jüngsten Beobachtung mit Headern
    3. Fehlervorhersage und Latenz-Drift über denselben Ausschnitt
    4. Signale zu Risikostufe, Konfidenz und Alternativen falten

    Vorhersagen werfen nie: auch ohne Daten wird ein vollständiges Ergebnis geliefert.
    """

    def __init__(self, config: MonitorConfig | None = None, clock: Clock | None = None) -> None:
        self._config = config or MonitorConfig()
        self._clock = clock or wall_clock_ms
        self._ledger = TrafficLedger(self._config.prediction_window, clock=self._clock)
        self._rate_limit_policy = RateLimitPolicy()
        self._failure_policy = FailurePolicy()
        self._latency_policy = LatencyPolicy()
        self._risk_policy = RiskPolicy(
            rate_limit_threshold=self._config.rate_limit_threshold,
            api_url=self._config.api_url,
        )

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def ledger(self) -> TrafficLedger:
        return self._ledger

    def record(self, observation: TrafficObservation) -> None:
        """Beobachtung im Ledger speichern (abgelaufene Einträge werden dabei entfernt)."""
        self._ledger.record(observation)

    def evaluate(self, endpoint: str) -> PredictionResult:
        """Synchrone Vorhersage für einen Endpunkt."""
        traffic = self._ledger.slice(endpoint)

        snapshot = self._rate_limit_policy.snapshot(traffic, self._clock())
        has_headers = self._rate_limit_policy.has_rate_limit_headers(traffic)
        rate_limit_approaching = self._risk_policy.is_rate_limit_approaching(snapshot)
        predicted_failure = self._failure_policy.predict_failure(traffic)
        latency_degraded = self._latency_policy.is_degraded(traffic)

        result = PredictionResult(
            endpoint=endpoint,
            risk_level=self._risk_policy.risk_level(
                rate_limit_approaching, predicted_failure, latency_degraded
            ),
            predicted_failure=predicted_failure,
            rate_limit_approaching=rate_limit_approaching,
            suggested_alternatives=self._risk_policy.suggest_alternatives(endpoint, traffic),
            confidence=self._risk_policy.confidence(traffic, has_headers),
            latency_degraded=latency_degraded,
        )

        PREDICTIONS_TOTAL.labels(risk_level=result.risk_level.value).inc()
        PREDICTION_CONFIDENCE.observe(result.confidence)

        if result.risk_level == RiskLevel.HIGH:
            logger.info(
                "Hohes Risiko für %s: Fehler=%s, Rate-Limit=%s (%d/%d), Latenz=%s",
                endpoint, predicted_failure, rate_limit_approaching,
                snapshot.remaining, snapshot.limit, latency_degraded,
            )
        else:
            logger.debug(
                "Vorhersage %s: %s bei %d Beobachtungen (Konfidenz %d)",
                endpoint, result.risk_level.value, len(traffic), result.confidence,
            )
        return result

    async def predict(self, endpoint: str) -> PredictionResult:
        """Async-Variante für API-Symmetrie: keine Suspendierung, rein synchron berechnet."""
        return self.evaluate(endpoint)

    def stats(self, endpoint: str) -> EndpointStats:
        """
        Kennzahlen des aktuellen Fensters.
        Anfragerate pro Minute über die Zeitspanne der Beobachtungen;
        eine Spanne von 0 ms zählt als eine Minute.
        """
        traffic = self._ledger.slice(endpoint)
        if not traffic:
            return EndpointStats(
                endpoint=endpoint,
                request_count=0,
                error_rate=0.0,
                average_response_time=0.0,
                requests_per_minute=0.0,
            )

        timestamps = [item.timestamp for item in traffic]
        duration_minutes = (max(timestamps) - min(timestamps)) / MS_PER_MINUTE or 1
        return EndpointStats(
            endpoint=endpoint,
            request_count=len(traffic),
            error_rate=self._failure_policy.error_rate(traffic),
            average_response_time=self._latency_policy.average_latency(traffic),
            requests_per_minute=len(traffic) / duration_minutes,
        )
