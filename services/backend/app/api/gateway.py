"""Gateway endpoint: validate the CEP and forward it to the aggregator."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, Response
from opentelemetry import trace
from starlette.concurrency import run_in_threadpool

from app.api.middleware import TIMEOUT_MESSAGE, request_scope_of
from app.models.schemas import TemperatureReading
from app.services.errors import (
    InvalidPostalCode,
    InvalidRequestBody,
    UpstreamDecodeError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from app.services.gateway import AggregatorClient
from app.services.postal_code import PostalCode, decode_postal_code_request
from app.services.tracing import extract_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gateway"])


@router.post("/", response_model=TemperatureReading)
async def gateway_weather(request: Request):
    tracer: trace.Tracer = request.app.state.tracer
    client: AggregatorClient = request.app.state.aggregator_client
    scope = request_scope_of(request)

    parent = extract_context(request.headers)
    with tracer.start_as_current_span("input-handler", context=parent) as span:
        try:
            code = PostalCode.parse(decode_postal_code_request(await request.body()))
        except InvalidRequestBody as exc:
            logger.warning("Invalid body request: %s", exc)
            raise HTTPException(status_code=400, detail="invalid body request") from exc
        except InvalidPostalCode as exc:
            logger.warning("Invalid zipcode: %r", exc.raw)
            raise HTTPException(status_code=422, detail="invalid zipcode") from exc

        span.set_attribute("cep", code.value)
        context = trace.set_span_in_context(span, parent)
        try:
            return await run_in_threadpool(
                client.temperature_for, code, context=context, scope=scope
            )
        except UpstreamStatusError as exc:
            return Response(content=exc.body, status_code=exc.status, media_type=exc.content_type)
        except UpstreamDecodeError as exc:
            logger.error("Aggregator payload for %s: %s", code, exc)
            raise HTTPException(status_code=500, detail="error to unmarshal body") from exc
        except UpstreamTransportError as exc:
            logger.error("Aggregator request for %s: %s", code, exc)
            if scope.expired:
                raise HTTPException(status_code=504, detail=TIMEOUT_MESSAGE) from exc
            raise HTTPException(status_code=500, detail="error to request weather data") from exc
