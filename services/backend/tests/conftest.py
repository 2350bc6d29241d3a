"""Pytest fixtures and fakes."""

from __future__ import annotations

import json
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import pytest
import requests
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.config import Settings  # noqa: E402
from app.main import create_app  # noqa: E402

GEO_URL = "http://geo.test/ws"
WEATHER_URL = "http://weather.test"
AGGREGATOR_URL = "http://aggregator.test"


class FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        *,
        status_code: int = 200,
        content: Optional[bytes] = None,
        content_type: str = "application/json",
    ):
        self.status_code = status_code
        self.content = content if content is not None else json.dumps(payload).encode()
        self.headers = {"Content-Type": content_type}

    def json(self):
        return json.loads(self.content)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Answers GETs by URL prefix and records every call it receives."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[SimpleNamespace] = []

    def calls_to(self, prefix: str) -> List[SimpleNamespace]:
        return [call for call in self.calls if call.url.startswith(prefix)]

    def get(self, url, params=None, headers=None, timeout=None, **kwargs):  # pylint: disable=unused-argument
        self.calls.append(SimpleNamespace(url=url, params=params, headers=dict(headers or {}), timeout=timeout))
        for prefix, answer in self.routes.items():
            if url.startswith(prefix):
                result = answer(url, params, headers) if callable(answer) else answer
                if isinstance(result, Exception):
                    raise result
                return result
        raise AssertionError(f"Unexpected URL {url}")

    def close(self):
        return None


def viacep_payload(city: str = "São Paulo", erro: Any = None) -> Dict[str, Any]:
    payload = {
        "cep": "01001-000",
        "logradouro": "Praça da Sé",
        "complemento": "lado ímpar",
        "bairro": "Sé",
        "localidade": city,
        "uf": "SP",
        "ibge": "3550308",
        "gia": "1004",
        "ddd": "11",
        "siafi": "7107",
    }
    if erro is not None:
        payload["erro"] = erro
    return payload


def weather_payload(temp_c: float = 25.0, temp_f: float = 77.0) -> Dict[str, Any]:
    return {
        "location": {"name": "Sao Paulo", "country": "Brazil"},
        "current": {"temp_c": temp_c, "temp_f": temp_f, "condition": {"text": "Sunny"}},
    }


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        values = dict(
            service_name="cep-weather-test",
            weather_service_url=AGGREGATOR_URL,
            weather_api_key="test-key",
            geo_api_url=GEO_URL,
            weather_api_url=WEATHER_URL,
            otel_exporter_otlp_endpoint=None,
            request_timeout_seconds=5.0,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def provider_session() -> FakeSession:
    """Upstream providers answering a known CEP with São Paulo at 25°C / 77°F."""
    return FakeSession(
        {
            GEO_URL: FakeResponse(viacep_payload()),
            WEATHER_URL: FakeResponse(weather_payload()),
        }
    )


@pytest.fixture
def aggregator_client(make_settings, tracer_provider, provider_session) -> TestClient:
    app = create_app(make_settings(), tracer_provider=tracer_provider, http_session=provider_session)
    return TestClient(app)


@pytest.fixture
def gateway_session(aggregator_client) -> FakeSession:
    """Forwards gateway → aggregator calls into the aggregator app."""

    def forward(url, params, headers):  # pylint: disable=unused-argument
        return aggregator_client.get(urlsplit(url).path, headers=headers)

    return FakeSession({AGGREGATOR_URL: forward})


@pytest.fixture
def gateway_client(make_settings, tracer_provider, gateway_session) -> TestClient:
    app = create_app(make_settings(), tracer_provider=tracer_provider, http_session=gateway_session)
    return TestClient(app)


class SlowUpstream:
    """Local HTTP server that stalls before answering or trickles its body."""

    def __init__(self):
        self.header_delay = 0.0
        self.chunk_delay = 0.0
        self.chunks = [b'{"cep": "01001-000", "localidade": "S', b'\xc3\xa3o Paulo"}']
        self.release = threading.Event()
        self.requests_seen = 0
        upstream = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):  # noqa: N802
                upstream.requests_seen += 1
                upstream.release.wait(upstream.header_delay)
                body_length = sum(len(chunk) for chunk in upstream.chunks)
                try:
                    self.send_response(200)
                    self.send_header("Content-Type", "application/json")
                    self.send_header("Content-Length", str(body_length))
                    self.end_headers()
                    for chunk in upstream.chunks:
                        self.wfile.write(chunk)
                        self.wfile.flush()
                        upstream.release.wait(upstream.chunk_delay)
                except (BrokenPipeError, ConnectionResetError):
                    pass

            def log_message(self, format, *args):  # pylint: disable=redefined-builtin
                return None

        self.server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.server.daemon_threads = True
        self.url = f"http://127.0.0.1:{self.server.server_port}"
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    def start(self):
        self._thread.start()

    def stop(self):
        self.release.set()
        self.server.shutdown()
        self.server.server_close()


@pytest.fixture
def slow_upstream():
    upstream = SlowUpstream()
    upstream.start()
    yield upstream
    upstream.stop()
