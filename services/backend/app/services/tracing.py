"""OpenTelemetry setup and explicit trace-context carriage between services."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping

from opentelemetry.context import Context
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

TRACER_NAME = "microservice-tracer"

# Header name -> value, as written on the wire.
TraceCarrier = Dict[str, str]

_propagator = TraceContextTextMapPropagator()


def init_provider(service_name: str, collector_url: str | None) -> tuple[TracerProvider, Callable[[], None]]:
    """Build a tracer provider; spans are exported over OTLP/HTTP when a collector is set."""
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    if collector_url:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        endpoint = collector_url.rstrip("/") + "/v1/traces"
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        logger.info("Exporting spans to %s", endpoint)
    else:
        logger.info("No trace collector configured; spans are not exported")
    return provider, provider.shutdown


def extract_context(headers: Mapping[str, str]) -> Context:
    """Continue the caller's trace from inbound headers (empty context if absent)."""
    carrier = {key.lower(): value for key, value in headers.items()}
    return _propagator.extract(carrier)


def inject_context(context: Context) -> TraceCarrier:
    """Encode ``context`` into headers for the next stage."""
    carrier: TraceCarrier = {}
    _propagator.inject(carrier, context=context)
    return carrier

