# advisor/ledger.py
# Traffic-Ledger: Beobachtungen in Ankunftsreihenfolge, Ablauf nur beim Einfügen
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

from .metrics import (
    LEDGER_SIZE,
    OBSERVATIONS_EXPIRED_TOTAL,
    OBSERVATIONS_TOTAL,
    method_label,
    status_class,
)
from .models import DEFAULT_PREDICTION_WINDOW_MS, TrafficObservation

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Aktuelle Wanduhrzeit in Epoch-Millisekunden."""
    return int(time.time() * 1000)


class TrafficLedger:
    """
    Append-and-expire-Speicher für Traffic-Beobachtungen.

    - Reihenfolge = Ankunftsreihenfolge (nicht Zeitstempel-Reihenfolge)
    - Ablauf wird ausschließlich in record() geprüft, relativ zur Uhrzeit des Aufrufs
    - Behalten wird nur, was jünger als das Fenster ist (now - timestamp < window)
    - Lesezugriffe zwischen zwei Einfügungen können veraltete Einträge sehen
    - Ein einziger Lock serialisiert record() und slice()
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_PREDICTION_WINDOW_MS,
        clock: Clock | None = None,
    ) -> None:
        self._window_ms = window_ms
        self._clock = clock or wall_clock_ms
        self._observations: deque[TrafficObservation] = deque()
        self._lock = threading.Lock()

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def record(self, observation: TrafficObservation) -> None:
        """Beobachtung anhängen, danach alle Einträge außerhalb des Fensters entfernen."""
        with self._lock:
            self._observations.append(observation)
            now = self._clock()
            before = len(self._observations)
            self._observations = deque(
                item for item in self._observations
                if now - item.timestamp < self._window_ms
            )
            expired = before - len(self._observations)
            size = len(self._observations)

        OBSERVATIONS_TOTAL.labels(
            method=method_label(observation.method),
            status_class=status_class(observation.status_code),
        ).inc()
        LEDGER_SIZE.set(size)
        if expired:
            OBSERVATIONS_EXPIRED_TOTAL.inc(expired)
            logger.debug("%d Beobachtung(en) abgelaufen, %d verbleibend", expired, size)

    def slice(self, endpoint: str) -> list[TrafficObservation]:
        """Alle gehaltenen Beobachtungen eines Endpunkts in Ankunftsreihenfolge (ohne Ablauf)."""
        with self._lock:
            return [item for item in self._observations if item.endpoint == endpoint]

    def endpoints(self) -> list[str]:
        """Verschiedene Endpunkte in Reihenfolge ihres ersten Auftretens."""
        with self._lock:
            return list(dict.fromkeys(item.endpoint for item in self._observations))

    def clear(self) -> None:
        with self._lock:
            self._observations.clear()
        LEDGER_SIZE.set(0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._observations)
