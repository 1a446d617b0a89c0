"""OpenTelemetry tracing, switched on with OTEL_ENABLED.

Spans are exported over OTLP/gRPC. With tracing disabled the API's no-op
tracer is used, so ``get_tracer(__name__).start_as_current_span`` is safe
to call everywhere.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..config import settings

logger = logging.getLogger(__name__)


def is_tracing_enabled() -> bool:
    return settings.OTEL_ENABLED


def configure_tracing(service_name: Optional[str] = None) -> Optional[TracerProvider]:
    """Install a global TracerProvider exporting to the OTLP endpoint.

    Returns:
        The provider, or None when tracing is disabled or setup failed
    """
    if not is_tracing_enabled():
        logger.info("OpenTelemetry tracing is disabled")
        return None

    name = service_name or settings.OTEL_SERVICE_NAME
    try:
        provider = TracerProvider(resource=Resource.create({"service.name": name}))
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT))
        )
        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.error(f"Failed to configure OpenTelemetry: {e}", exc_info=True)
        return None

    logger.info(
        "OpenTelemetry tracing configured",
        extra={"service_name": name, "otlp_endpoint": settings.OTEL_EXPORTER_OTLP_ENDPOINT},
    )
    return provider


def instrument_app(app, engine) -> None:
    """Instrument the FastAPI app and the SQLAlchemy engine."""
    if not is_tracing_enabled():
        return
    FastAPIInstrumentor.instrument_app(app)
    SQLAlchemyInstrumentor().instrument(engine=engine)
    logger.info("FastAPI and SQLAlchemy instrumented with OpenTelemetry")


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def get_current_trace_id() -> Optional[str]:
    """Hex trace id of the active span, or None outside a recorded span."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")
