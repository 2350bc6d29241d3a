"""WeatherAPI client: current temperature for a city."""

from __future__ import annotations

import logging

import requests
from opentelemetry import trace
from pydantic import ValidationError

from app.models.schemas import TemperatureReading, WeatherApiPayload
from app.services.errors import UpstreamDecodeError
from app.services.http import get_json
from app.services.request_scope import RequestScope

logger = logging.getLogger(__name__)

# Simplified offset; readings are published with +273, not +273.15.
KELVIN_OFFSET = 273


def celsius_to_kelvin(celsius: float) -> float:
    return celsius + KELVIN_OFFSET


class WeatherLookupClient:
    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        api_key: str,
        tracer: trace.Tracer,
    ) -> None:
        self._session = session
        self._endpoint = f"{base_url.rstrip('/')}/v1/current.json"
        self._api_key = api_key
        self._tracer = tracer

    def current(self, city: str, *, scope: RequestScope) -> TemperatureReading:
        """Fetch current conditions for ``city``.

        Fahrenheit is taken from the provider as-is; only Kelvin is derived.
        """
        # requests URL-escapes the query values.
        params = {"key": self._api_key, "q": city, "aqi": "no"}
        with self._tracer.start_as_current_span("weather-lookup") as span:
            span.set_attribute("city", city)
            raw = get_json(self._session, self._endpoint, scope=scope, params=params)
            try:
                payload = WeatherApiPayload.model_validate(raw)
            except ValidationError as exc:
                raise UpstreamDecodeError(f"unexpected weather payload: {exc}") from exc

        conditions = payload.current
        return TemperatureReading(
            city=city,
            kelvin=celsius_to_kelvin(conditions.temp_c),
            celsius=conditions.temp_c,
            fahrenheit=conditions.temp_f,
        )
