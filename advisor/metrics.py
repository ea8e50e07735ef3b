# advisor/metrics.py
# Prometheus-Metriken: Beobachtungen, Ledger-Größe, Vorhersagen nach Risikostufe
from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# ── Metriken-Definitionen ──────────────────────────────────────────────────

OBSERVATIONS_TOTAL = Counter(
    "advisor_observations_total",
    "Aufgezeichnete Traffic-Beobachtungen",
    ["method", "status_class"],
)

OBSERVATIONS_EXPIRED_TOTAL = Counter(
    "advisor_observations_expired_total",
    "Aus dem Vorhersagefenster entfernte Beobachtungen",
)

LEDGER_SIZE = Gauge(
    "advisor_ledger_size",
    "Aktuell im Ledger gehaltene Beobachtungen",
)

PREDICTIONS_TOTAL = Counter(
    "advisor_predictions_total",
    "Berechnete Vorhersagen nach Risikostufe",
    ["risk_level"],
)

PREDICTION_CONFIDENCE = Histogram(
    "advisor_prediction_confidence",
    "Konfidenz der berechneten Vorhersagen",
    buckets=[10, 25, 50, 75, 90, 95, 100],
)


# Bekannte HTTP-Methoden; alles andere landet unter "other"
KNOWN_METHODS = frozenset({
    "GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT",
})


def method_label(method: str) -> str:
    """HTTP-Methode auf festen Wertebereich abbilden: begrenzt die Label-Kardinalität."""
    upper = method.upper()
    return upper if upper in KNOWN_METHODS else "other"


def status_class(status_code: int) -> str:
    """Statuscode auf Klasse abbilden (2xx, 4xx, ...): begrenzt die Label-Kardinalität."""
    if 100 <= status_code <= 599:
        return f"{status_code // 100}xx"
    return "other"


def get_metrics_response() -> tuple[bytes, str]:
    """Prometheus-Metriken im Textformat zurückgeben."""
    return generate_latest(), CONTENT_TYPE_LATEST
