#!/usr/bin/env python3
"""
scripts/replay.py - Traffic-Replay gegen den TrafficMonitor

Liest aufgezeichnete Beobachtungen (JSON Lines, ein TrafficObservation-Objekt
pro Zeile), spielt sie in Ankunftsreihenfolge ab und gibt pro Endpunkt die
Vorhersage als JSON aus. Die Uhr des Monitors folgt dabei den Zeitstempeln
der Aufzeichnung, so dass das Vorhersagefenster wie im Live-Betrieb abläuft.

Verwendung:
  python scripts/replay.py traffic.jsonl
  python scripts/replay.py traffic.jsonl --endpoint /v1/users/
  python scripts/replay.py traffic.jsonl --window 30000 --threshold 90
  python scripts/replay.py --help
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from advisor.models import (
    DEFAULT_PREDICTION_WINDOW_MS,
    DEFAULT_RATE_LIMIT_THRESHOLD,
    MonitorConfig,
    PredictionResult,
    TrafficObservation,
)
from advisor.monitor import TrafficMonitor


class ReplayClock:
    """Uhr, die den Zeitstempeln der abgespielten Beobachtungen folgt (nie rückwärts)."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms

    def advance_to(self, timestamp_ms: int) -> None:
        self.now_ms = max(self.now_ms, timestamp_ms)

    def __call__(self) -> int:
        return self.now_ms


def load_observations(path: Path) -> list[TrafficObservation]:
    """JSON-Lines-Datei einlesen; ungültige Zeilen werden auf stderr gemeldet und übersprungen."""
    observations: list[TrafficObservation] = []
    # Binär lesen: eine Zeile mit ungültigem UTF-8 darf den Rest nicht verwerfen
    with path.open("rb") as fh:
        for line_no, raw in enumerate(fh, start=1):
            if not raw.strip():
                continue
            try:
                line = raw.decode("utf-8").strip()
                observations.append(TrafficObservation.model_validate(json.loads(line)))
            except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
                print(f"Zeile {line_no} übersprungen: {exc}", file=sys.stderr)
    return observations


async def replay(
    observations: list[TrafficObservation],
    config: MonitorConfig,
    endpoints: list[str] | None = None,
) -> list[PredictionResult]:
    """Beobachtungen abspielen und Vorhersagen für alle (oder die gewählten) Endpunkte liefern."""
    clock = ReplayClock()
    monitor = TrafficMonitor(config, clock=clock)

    for observation in observations:
        clock.advance_to(observation.timestamp)
        monitor.record(observation)

    targets = endpoints or list(dict.fromkeys(o.endpoint for o in observations))
    return [await monitor.predict(endpoint) for endpoint in targets]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Traffic-Replay für den API Traffic Advisor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("traffic_file", type=Path, help="JSON-Lines-Datei mit Beobachtungen")
    parser.add_argument(
        "--endpoint",
        action="append",
        dest="endpoints",
        help="Nur diesen Endpunkt auswerten (mehrfach angebbar)",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=DEFAULT_PREDICTION_WINDOW_MS,
        help=f"Vorhersagefenster in ms (Standard: {DEFAULT_PREDICTION_WINDOW_MS})",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_RATE_LIMIT_THRESHOLD,
        help=f"Rate-Limit-Schwellenwert in Prozent (Standard: {DEFAULT_RATE_LIMIT_THRESHOLD:.0f})",
    )
    parser.add_argument("--api-url", default=None, help="Basis-URL für alternative Endpunkte")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not args.traffic_file.is_file():
        print(f"Datei nicht gefunden: {args.traffic_file}", file=sys.stderr)
        return 1

    config = MonitorConfig(
        rate_limit_threshold=args.threshold,
        prediction_window=args.window,
        api_url=args.api_url,
    )
    observations = load_observations(args.traffic_file)
    results = asyncio.run(replay(observations, config, args.endpoints))

    for result in results:
        print(result.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
