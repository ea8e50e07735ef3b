# advisor/models.py
# Pydantic v2 Datenschemas: Traffic-Beobachtungen, Konfiguration und Vorhersagen
from __future__ import annotations

import os
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Standardwerte der Monitor-Konfiguration
DEFAULT_RATE_LIMIT_THRESHOLD = 80.0   # Prozent des Limits verbraucht
DEFAULT_PREDICTION_WINDOW_MS = 60_000  # 1 Minute


class RiskLevel(str, Enum):
    """Ordinale Risikostufe einer Vorhersage."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrafficObservation(BaseModel):
    """
    Einzelner beobachteter Request/Response-Austausch.
    Unveränderlich nach Erstellung (auch die Header): gehört bis zum Ablauf exklusiv dem Ledger.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    method: str
    timestamp: int  # Epoch-Millisekunden
    response_time: int = Field(ge=0)  # Millisekunden
    status_code: int
    # Header-Namen in beliebiger Schreibweise (x-ratelimit-* und ratelimit-*)
    headers: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    @field_validator("headers")
    @classmethod
    def freeze_headers(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("headers")
    def serialize_headers(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)


class MonitorConfig(BaseModel):
    """Konfiguration eines TrafficMonitor: eine Instanz pro Monitor."""

    rate_limit_threshold: float = Field(default=DEFAULT_RATE_LIMIT_THRESHOLD, ge=0)
    prediction_window: int = Field(default=DEFAULT_PREDICTION_WINDOW_MS, ge=1)
    api_url: str | None = None
    # Reserviert, von der Vorhersagelogik nicht verwendet
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> MonitorConfig:
        """Konfiguration aus Umgebungsvariablen (ADVISOR_*) laden."""
        return cls(
            rate_limit_threshold=float(
                os.getenv("ADVISOR_RATE_LIMIT_THRESHOLD", str(DEFAULT_RATE_LIMIT_THRESHOLD))
            ),
            prediction_window=int(
                os.getenv("ADVISOR_PREDICTION_WINDOW_MS", str(DEFAULT_PREDICTION_WINDOW_MS))
            ),
            api_url=os.getenv("ADVISOR_API_URL") or None,
            api_key=os.getenv("ADVISOR_API_KEY") or None,
        )


class RateLimitSnapshot(BaseModel):
    """Abgeleitetes limit/remaining/reset-Tripel: wird pro Vorhersage neu berechnet."""

    limit: int = 100
    remaining: int = 100
    reset: int  # Epoch-Millisekunden


class PredictionResult(BaseModel):
    """Ergebnis einer Risikovorhersage für einen Endpunkt."""

    endpoint: str
    risk_level: RiskLevel
    predicted_failure: bool
    rate_limit_approaching: bool
    suggested_alternatives: list[str]
    confidence: int
    latency_degraded: bool = False


class EndpointStats(BaseModel):
    """Kennzahlen des aktuellen Fensters für einen Endpunkt."""

    endpoint: str
    request_count: int
    error_rate: float
    average_response_time: float
    requests_per_minute: float
