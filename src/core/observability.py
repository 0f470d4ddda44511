"""OpenTelemetry tracing for inbound lookups and outbound ANAF calls.

Tracing is off by default. When ``observability_config.enable_tracing`` is
set, three kinds of spans are produced:

- one server span per inbound request (FastAPI instrumentation)
- one ``anaf.request`` span per upstream candidate (``trace_operation``)
- one client span per HTTP exchange with ANAF (HTTPX instrumentation)

The exporter is chosen by ``exporter_type``: ``console`` writes spans
through Loguru, ``otlp`` ships them to a collector, ``none`` drops them.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from src.core.constants import CORRELATION_ID_HEADER
from src.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from fastapi import FastAPI

    from src.core.config import Settings

TRACER_NAME: Final[str] = "anaf-proxy"
DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"
NANOSECONDS_PER_MILLISECOND: Final[int] = 1_000_000
CORRELATION_ID_ATTRIBUTE: Final[str] = "correlation_id"

# Liveness probes and docs are not worth a trace
UNTRACED_URLS: Final[str] = "/test,/api/test,/docs,/redoc,/openapi.json"

_CORRELATION_HEADER_KEY: Final[bytes] = CORRELATION_ID_HEADER.lower().encode()


class LoguruSpanExporter(SpanExporter):
    """Writes each finished span as a Loguru debug record."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            context = span.get_span_context()
            if context is None:
                continue

            elapsed_ms = None
            if span.start_time and span.end_time:
                elapsed_ms = (
                    span.end_time - span.start_time
                ) // NANOSECONDS_PER_MILLISECOND

            logger.debug(
                "Span {} finished",
                span.name,
                trace_id=format(context.trace_id, "032x"),
                span_id=format(context.span_id, "016x"),
                duration_ms=elapsed_ms,
                span_status=span.status.status_code.name,
                **{f"span.{k}": v for k, v in (span.attributes or {}).items()},
            )

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Select the exporter named by ``exporter_type``.

    Returns:
        SpanExporter | None: The exporter, or None when export is disabled.
    """
    config = settings.observability_config

    match config.exporter_type:
        case "console":
            logger.info("Exporting spans to the log")
            return LoguruSpanExporter()
        case "otlp":
            endpoint = config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
            logger.info("Exporting spans over OTLP to {}", endpoint)
            return OTLPSpanExporter(
                endpoint=endpoint,
                insecure=settings.environment == "development",
            )
        case _:
            logger.info("Span export disabled")
            return None


def setup_tracing(settings: Settings) -> None:
    """Install the global tracer provider when tracing is enabled."""
    config = settings.observability_config
    if not config.enable_tracing:
        logger.debug("Tracing disabled")
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.app_name,
                "service.version": settings.app_version,
                "deployment.environment": settings.environment,
            }
        ),
        sampler=TraceIdRatioBased(config.trace_sample_rate),
    )
    if (exporter := get_span_exporter(settings)) is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    logger.info(
        "Tracing enabled",
        exporter_type=config.exporter_type,
        sample_rate=config.trace_sample_rate,
    )


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Instrument inbound FastAPI requests and outbound HTTPX calls.

    Args:
        app: The application to instrument.
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=UNTRACED_URLS,
        server_request_hook=add_correlation_id_to_span,
    )
    HTTPXClientInstrumentor().instrument()

    logger.info("Inbound and upstream HTTP instrumented")


def add_correlation_id_to_span(span: trace.Span, scope: dict[str, Any]) -> None:
    """Tag the server span with the caller's correlation ID.

    The server span starts before ``RequestContextMiddleware`` runs, so the
    inbound header is read straight from the ASGI scope when the context is
    still empty.
    """
    if not span.is_recording():
        return
    correlation_id = RequestContext.get_correlation_id()
    if not correlation_id:
        raw = dict(scope.get("headers", [])).get(_CORRELATION_HEADER_KEY, b"")
        correlation_id = raw.decode("latin-1")
    if correlation_id:
        span.set_attribute(CORRELATION_ID_ATTRIBUTE, correlation_id)


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Iterator[trace.Span]:
    """Run a block inside a span named ``name``.

    Without an installed provider the span is a no-op.

    Example:
        >>> with trace_operation("anaf.request", version="v8", cui="14399840"):
        ...     response = await transport.send(request)
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        if correlation_id := RequestContext.get_correlation_id():
            span.set_attribute(CORRELATION_ID_ATTRIBUTE, correlation_id)
        yield span
