# advisor/hooks.py
# httpx-Event-Hooks: jede Antwort eines Clients automatisch als Beobachtung aufzeichnen
from __future__ import annotations

import logging
import time

import httpx

from .ledger import Clock, wall_clock_ms
from .models import TrafficObservation
from .monitor import TrafficMonitor

logger = logging.getLogger(__name__)

# Schlüssel in request.extensions für den monotonen Startzeitpunkt
START_EXTENSION = "advisor_started_at"


class TrafficRecorder:
    """
    Verbindet einen httpx-Client mit einem TrafficMonitor.

    Verwendung:
        recorder = TrafficRecorder(monitor)
        client = httpx.Client(event_hooks=recorder.event_hooks())
        async_client = httpx.AsyncClient(event_hooks=recorder.async_event_hooks())

    Fehler beim Aufzeichnen werden protokolliert, aber nie an den Client weitergereicht.
    """

    def __init__(self, monitor: TrafficMonitor, clock: Clock | None = None) -> None:
        self._monitor = monitor
        self._clock = clock or wall_clock_ms

    def on_request(self, request: httpx.Request) -> None:
        """Startzeitpunkt am Request vermerken."""
        request.extensions[START_EXTENSION] = time.monotonic()

    def on_response(self, response: httpx.Response) -> None:
        """Antwort in eine Beobachtung umwandeln und aufzeichnen."""
        try:
            self._monitor.record(self.build_observation(response))
        except Exception as exc:
            logger.warning("Traffic-Aufzeichnung fehlgeschlagen: %s", exc)

    async def on_request_async(self, request: httpx.Request) -> None:
        self.on_request(request)

    async def on_response_async(self, response: httpx.Response) -> None:
        self.on_response(response)

    def build_observation(self, response: httpx.Response) -> TrafficObservation:
        request = response.request
        started_at = request.extensions.get(START_EXTENSION)
        elapsed_ms = (
            int((time.monotonic() - started_at) * 1000) if started_at is not None else 0
        )
        return TrafficObservation(
            endpoint=request.url.path,
            method=request.method,
            timestamp=self._clock(),
            response_time=max(0, elapsed_ms),
            status_code=response.status_code,
            headers=dict(response.headers.items()),
        )

    def event_hooks(self) -> dict[str, list]:
        """Hooks für httpx.Client."""
        return {"request": [self.on_request], "response": [self.on_response]}

    def async_event_hooks(self) -> dict[str, list]:
        """Hooks für httpx.AsyncClient."""
        return {"request": [self.on_request_async], "response": [self.on_response_async]}
