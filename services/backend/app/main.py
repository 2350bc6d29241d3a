from __future__ import annotations

import logging
from typing import Optional

import requests
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from opentelemetry.sdk.trace import TracerProvider
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.gateway import router as gateway_router
from app.api.middleware import RequestScopeMiddleware
from app.api.weather import router as weather_router
from app.config import Settings, get_settings
from app.services.aggregator import TemperatureAggregator
from app.services.gateway import AggregatorClient
from app.services.geo import GeoLookupClient
from app.services.http import scoped_session
from app.services.tracing import TRACER_NAME, init_provider
from app.services.weather import WeatherLookupClient
from app.utils.logging_colors import install_color_handler

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    tracer_provider: Optional[TracerProvider] = None,
    http_session: Optional[requests.Session] = None,
) -> FastAPI:
    """Build the service with both the gateway and aggregator routes mounted."""
    settings = settings or get_settings()
    install_color_handler(logging.getLogger("app"), settings.log_level.upper())

    if tracer_provider is None:
        tracer_provider, shutdown_tracing = init_provider(
            settings.service_name, settings.otel_exporter_otlp_endpoint
        )
    else:
        shutdown_tracing = None
    tracer = tracer_provider.get_tracer(TRACER_NAME)

    geo_session = http_session or scoped_session()
    weather_session = http_session or scoped_session()
    aggregator_session = http_session or scoped_session()

    app = FastAPI(title="CEP Weather", version="1.0.0")
    app.state.settings = settings
    app.state.tracer = tracer
    app.state.aggregator_client = AggregatorClient(aggregator_session, settings.weather_service_url)
    app.state.aggregator = TemperatureAggregator(
        GeoLookupClient(geo_session, settings.geo_api_url, tracer),
        WeatherLookupClient(weather_session, settings.weather_api_url, settings.weather_api_key, tracer),
    )

    app.add_middleware(RequestScopeMiddleware, timeout=settings.request_timeout_seconds)

    @app.exception_handler(StarletteHTTPException)
    async def _plain_text_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        message = str(exc.detail)
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "route does not exist"
        elif exc.status_code == 405:
            message = "method is not valid"
        return PlainTextResponse(message, status_code=exc.status_code, headers=exc.headers)

    @app.on_event("startup")
    def _startup() -> None:
        logger.info(
            "%s ready; aggregator at %s", settings.service_name, settings.weather_service_url
        )

    @app.on_event("shutdown")
    def _shutdown() -> None:
        for session in {geo_session, weather_session, aggregator_session}:
            session.close()
        if shutdown_tracing is not None:
            shutdown_tracing()

    app.include_router(gateway_router)
    app.include_router(weather_router)

    @app.get("/healthz")
    def healthz() -> dict[str, object]:
        return {"ok": True}

    return app


app = create_app()
