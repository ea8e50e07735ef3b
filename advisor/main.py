# advisor/main.py
# FastAPI-Anwendung: Traffic aufzeichnen, Vorhersagen abrufen, Monitoring-Endpunkte
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.responses import Response

from .metrics import get_metrics_response
from .models import EndpointStats, MonitorConfig, PredictionResult, TrafficObservation
from .monitor import TrafficMonitor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Anwendungs-Lifecycle: Monitor einmalig aus der Umgebung konfigurieren."""
    config = MonitorConfig.from_env()
    app.state.monitor = TrafficMonitor(config)
    logger.info(
        "✅ Traffic-Advisor gestartet: Fenster %dms, Schwellenwert %.0f%%",
        config.prediction_window, config.rate_limit_threshold,
    )
    yield
    logger.info("Traffic-Advisor heruntergefahren")


app = FastAPI(
    title="API Traffic Advisor",
    description="Risikovorhersage für API-Endpunkte aus beobachtetem Traffic",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/metrics", include_in_schema=False, tags=["Monitoring"])
async def prometheus_metrics() -> Response:
    """Prometheus-Metriken im Textformat (für Scraping durch Prometheus-Server)."""
    data, content_type = get_metrics_response()
    return Response(content=data, media_type=content_type)


@app.get("/health", tags=["Monitoring"])
async def health_check(request: Request) -> dict:
    """Status, Anzahl gehaltener Beobachtungen und bekannte Endpunkte."""
    monitor: TrafficMonitor = request.app.state.monitor
    return {
        "status": "healthy",
        "observations": len(monitor.ledger),
        "endpoints": monitor.ledger.endpoints(),
    }


@app.post("/traffic", status_code=202, tags=["Traffic"])
async def record_traffic(request: Request, payload: TrafficObservation) -> dict:
    """Beobachteten Request/Response-Austausch aufzeichnen."""
    request.app.state.monitor.record(payload)
    return {"status": "recorded"}


@app.get("/predict", response_model=PredictionResult, tags=["Traffic"])
async def predict(request: Request, endpoint: str = Query(...)) -> PredictionResult:
    """
    Risikovorhersage für einen Endpunkt.

    Signale:
    1. Rate-Limit nähert sich (remaining < limit × Schwellenwert)
    2. Fehlerquote (Fenster >30% oder letzte 10 >50%)
    3. Latenz-Drift (letzte 5 > 2× Durchschnitt)
    """
    return await request.app.state.monitor.predict(endpoint)


@app.get("/stats", response_model=EndpointStats, tags=["Traffic"])
async def endpoint_stats(request: Request, endpoint: str = Query(...)) -> EndpointStats:
    """Kennzahlen des aktuellen Fensters für einen Endpunkt."""
    return request.app.state.monitor.stats(endpoint)
