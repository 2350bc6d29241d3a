"""Aggregator endpoint: current temperature for a postal code."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from opentelemetry import trace

from app.api.middleware import TIMEOUT_MESSAGE, request_scope_of
from app.models.schemas import TemperatureReading
from app.services.aggregator import TemperatureAggregator
from app.services.errors import LocationLookupError, LocationNotFound, WeatherLookupError
from app.services.tracing import extract_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["weather"])


@router.get("/weather/{cep}", response_model=TemperatureReading)
def weather_for_cep(cep: str, request: Request) -> TemperatureReading:
    tracer: trace.Tracer = request.app.state.tracer
    aggregator: TemperatureAggregator = request.app.state.aggregator
    scope = request_scope_of(request)

    parent = extract_context(request.headers)
    with tracer.start_as_current_span("weather-handler", context=parent) as span:
        span.set_attribute("cep", cep)
        try:
            return aggregator.temperature_for(cep, scope=scope)
        except LocationNotFound as exc:
            logger.info("No location for cep %s", exc.code)
            raise HTTPException(status_code=404, detail="can not find zipcode") from exc
        except LocationLookupError as exc:
            logger.error("Location lookup for %s failed: %s", cep, exc)
            if scope.expired:
                raise HTTPException(status_code=504, detail=TIMEOUT_MESSAGE) from exc
            raise HTTPException(status_code=500, detail="error to get location data") from exc
        except WeatherLookupError as exc:
            logger.error("Weather lookup for %s failed: %s", cep, exc)
            if scope.expired:
                raise HTTPException(status_code=504, detail=TIMEOUT_MESSAGE) from exc
            raise HTTPException(status_code=500, detail="error to get weather data") from exc
