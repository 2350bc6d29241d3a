"""Gateway side of the hop to the aggregator service."""

from __future__ import annotations

import logging

import requests
from opentelemetry.context import Context
from pydantic import ValidationError

from app.models.schemas import TemperatureReading
from app.services.errors import UpstreamDecodeError, UpstreamStatusError
from app.services.http import transport_error
from app.services.postal_code import PostalCode
from app.services.request_scope import RequestScope
from app.services.tracing import inject_context

logger = logging.getLogger(__name__)


class AggregatorClient:
    """Calls ``GET {base}/weather/{cep}`` on the aggregator, carrying the trace context."""

    def __init__(self, session: requests.Session, base_url: str) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")

    def _url(self, code: PostalCode) -> str:
        return f"{self._base_url}/weather/{code}"

    def temperature_for(
        self,
        code: PostalCode,
        *,
        context: Context,
        scope: RequestScope,
    ) -> TemperatureReading:
        """Fetch the reading for ``code``.

        Raises:
            UpstreamTransportError: the aggregator could not be reached.
            UpstreamStatusError: the aggregator answered with a non-200 status.
            UpstreamDecodeError: a 200 answer did not hold a temperature reading.
        """
        headers = {"Content-Type": "application/json"}
        headers.update(inject_context(context))
        url = self._url(code)

        with scope.hop() as timeout:
            try:
                response = self._session.get(url, headers=headers, timeout=timeout)
                body = response.content
            except requests.RequestException as exc:
                raise transport_error(url, exc, scope) from exc

        if response.status_code != 200:
            logger.info("Aggregator answered %s for %s", response.status_code, code)
            raise UpstreamStatusError(
                response.status_code, body, response.headers.get("Content-Type")
            )

        try:
            return TemperatureReading.model_validate_json(body)
        except ValidationError as exc:
            raise UpstreamDecodeError(f"invalid aggregator payload: {exc}") from exc
