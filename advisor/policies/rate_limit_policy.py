# advisor/policies/rate_limit_policy.py
# Rate-Limit-Extraktion aus Response-Headern (x-ratelimit-* und ratelimit-*)
from __future__ import annotations

import re
from typing import Mapping, Sequence

from ..models import RateLimitSnapshot, TrafficObservation

DEFAULT_LIMIT = 100
DEFAULT_REMAINING = 100
DEFAULT_RESET_OFFSET_MS = 60_000  # Standard-Reset: in 1 Minute

# Kandidaten-Schlüssel pro Feld: in fester Präferenzreihenfolge
LIMIT_KEYS: tuple[str, ...] = ("x-ratelimit-limit", "ratelimit-limit")
REMAINING_KEYS: tuple[str, ...] = ("x-ratelimit-remaining", "ratelimit-remaining")
RESET_KEYS: tuple[str, ...] = ("x-ratelimit-reset", "ratelimit-reset")

# Header, deren Vorhandensein eine Beobachtung als "mit Rate-Limit-Info" markiert
RECOGNIZED_KEYS: frozenset[str] = frozenset(LIMIT_KEYS + REMAINING_KEYS)

# Nur ASCII-Ziffern mit optionalem Minus: kein "1_0", "+5", "1.5" oder Nicht-ASCII-Ziffern
_INTEGER_RE = re.compile(r"-?[0-9]+")


def _normalize(headers: Mapping[str, str]) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def _pick(headers: Mapping[str, str], keys: Sequence[str]) -> str | None:
    """Ersten vorhandenen, nicht-leeren Wert in Präferenzreihenfolge liefern."""
    for key in keys:
        value = headers.get(key)
        if value:
            return value
    return None


def _parse_int(value: str | None, default: int) -> int:
    """Ganzzahl parsen; jeder Fehler fällt nur für dieses Feld auf den Standard zurück."""
    if value is None:
        return default
    value = value.strip()
    if not _INTEGER_RE.fullmatch(value):
        return default
    return int(value)


def carries_rate_limit_headers(observation: TrafficObservation) -> bool:
    """True wenn die Beobachtung mindestens einen erkannten Rate-Limit-Header trägt."""
    return any(key.lower() in RECOGNIZED_KEYS for key in observation.headers)


class RateLimitPolicy:
    """
    Leitet limit/remaining/reset aus der jüngsten Beobachtung mit Rate-Limit-Headern ab.
    x-ratelimit-* hat Vorrang vor ratelimit-*. Fehlerhafte Werte degradieren
    feldweise auf Standardwerte, ohne die anderen Felder zu verwerfen.
    """

    def has_rate_limit_headers(self, observations: Sequence[TrafficObservation]) -> bool:
        return any(carries_rate_limit_headers(item) for item in observations)

    def snapshot(
        self, observations: Sequence[TrafficObservation], now_ms: int
    ) -> RateLimitSnapshot:
        """
        Snapshot aus der letzten (jüngsten nach Ankunft) Beobachtung mit Headern.
        Ohne solche Beobachtung: limit=100, remaining=100, reset=now+60000.
        """
        default_reset = now_ms + DEFAULT_RESET_OFFSET_MS

        latest = None
        for item in reversed(observations):
            if carries_rate_limit_headers(item):
                latest = item
                break

        if latest is None:
            return RateLimitSnapshot(
                limit=DEFAULT_LIMIT, remaining=DEFAULT_REMAINING, reset=default_reset
            )

        headers = _normalize(latest.headers)
        return RateLimitSnapshot(
            limit=_parse_int(_pick(headers, LIMIT_KEYS), DEFAULT_LIMIT),
            remaining=_parse_int(_pick(headers, REMAINING_KEYS), DEFAULT_REMAINING),
            reset=_parse_int(_pick(headers, RESET_KEYS), default_reset),
        )
