import logging
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import CollectorRegistry, Info
from prometheus_fastapi_instrumentator import Instrumentator

from doh_forwarder.environment import HostEnvironment
from doh_forwarder.errors import InvalidRouteError
from doh_forwarder.routes import router
from doh_forwarder.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from doh_forwarder.vars import METRICS_PATH, OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streamed responses.
    Every forwarded upstream chunk would otherwise produce its own span.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


def configure_tracing() -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(
            BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
        )


async def upstream_timeout_handler(request: Request, exc: httpx.TimeoutException):
    log_exception_with_details(
        logger, f"[Forward] Upstream timeout for {request.url.path}.", exc
    )
    return PlainTextResponse("Gateway Timeout", status_code=504)


async def upstream_transport_error_handler(
    request: Request, exc: httpx.TransportError
):
    log_exception_with_details(
        logger, f"[Forward] Upstream transport error for {request.url.path}.", exc
    )
    return PlainTextResponse("Bad Gateway", status_code=502)


async def invalid_route_handler(request: Request, exc: InvalidRouteError):
    logger.error(f"[Forward] {format_exception_message(exc)}")
    return PlainTextResponse("Internal Server Error", status_code=500)


def create_app(environment: Optional[HostEnvironment] = None) -> FastAPI:
    # Every path belongs to the router, so the generated docs routes stay off
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.state.environment = environment or HostEnvironment.from_env()

    app.add_exception_handler(httpx.TimeoutException, upstream_timeout_handler)
    app.add_exception_handler(httpx.TransportError, upstream_transport_error_handler)
    app.add_exception_handler(InvalidRouteError, invalid_route_handler)

    if METRICS_PATH:
        registry = CollectorRegistry()
        Instrumentator(registry=registry).instrument(app).expose(
            app, endpoint=METRICS_PATH, include_in_schema=False
        )
        app_info = Info(
            "doh_forwarder_app", "Application Info", registry=registry
        )
        app_info.info({"app_name": SERVICE_NAME})

    FastAPIInstrumentor.instrument_app(app, excluded_urls="")

    # The catch-all route goes last so the metrics endpoint above wins
    app.include_router(router)
    return app


configure_tracing()
app = create_app()
