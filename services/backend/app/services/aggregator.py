"""Aggregator: postal code → location → current temperature."""

from __future__ import annotations

from app.models.schemas import TemperatureReading
from app.services.errors import (
    LocationLookupError,
    LocationNotFound,
    UpstreamTransportError,
    WeatherLookupError,
)
from app.services.geo import GeoLookupClient
from app.services.request_scope import RequestScope
from app.services.weather import WeatherLookupClient


class TemperatureAggregator:
    """Runs the geo lookup, then the weather lookup, strictly in that order."""

    def __init__(self, geo: GeoLookupClient, weather: WeatherLookupClient) -> None:
        self._geo = geo
        self._weather = weather

    def temperature_for(self, code: str, *, scope: RequestScope) -> TemperatureReading:
        """Resolve ``code`` to a city and return its current temperature.

        Raises:
            LocationLookupError: the geo provider could not be reached or decoded.
            LocationNotFound: the geo provider flagged the code as unknown.
            WeatherLookupError: the weather provider failed in any way.
        """
        try:
            location = self._geo.lookup(code, scope=scope)
        except UpstreamTransportError as exc:
            raise LocationLookupError(f"geo lookup failed: {exc}") from exc

        if location is None:
            raise LocationNotFound(code)

        try:
            return self._weather.current(location.city, scope=scope)
        except UpstreamTransportError as exc:
            raise WeatherLookupError(f"weather lookup failed: {exc}") from exc
