"""ViaCEP client: postal code → locality."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from opentelemetry import trace
from pydantic import ValidationError

from app.models.schemas import LocationInfo, ViaCepPayload
from app.services.errors import UpstreamDecodeError
from app.services.http import get_json
from app.services.request_scope import RequestScope

logger = logging.getLogger(__name__)


class GeoLookupClient:
    """Resolves a postal code to a :class:`LocationInfo` via ``{base}/{cep}/json/``."""

    def __init__(self, session: requests.Session, base_url: str, tracer: trace.Tracer) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._tracer = tracer

    def _url(self, code: str) -> str:
        return f"{self._base_url}/{code}/json/"

    def lookup(self, code: str, *, scope: RequestScope) -> Optional[LocationInfo]:
        """Return the location for ``code``, or ``None`` when the provider flags it unknown.

        Raises:
            UpstreamTransportError: the call failed or the body was not a location payload.
        """
        with self._tracer.start_as_current_span("geo-lookup") as span:
            span.set_attribute("cep", code)
            raw = get_json(self._session, self._url(code), scope=scope)
            try:
                payload = ViaCepPayload.model_validate(raw)
            except ValidationError as exc:
                raise UpstreamDecodeError(f"unexpected geo payload: {exc}") from exc

            if payload.not_found:
                logger.info("Geo provider has no location for %s", code)
                span.set_attribute("geo.found", False)
                return None

            span.set_attribute("geo.found", True)
            return LocationInfo(
                code=payload.cep,
                state=payload.uf,
                city=payload.localidade,
                neighborhood=payload.bairro,
                street=payload.logradouro,
            )
