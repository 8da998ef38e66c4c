"""OpenTelemetry initialization for the dashboard."""

import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger("agile-dashboard.telemetry")


def init_telemetry() -> None:
    """Initialize OpenTelemetry tracing.

    Spans go to the OTLP endpoint when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set,
    to the console when ``OTEL_CONSOLE_EXPORT=true``, and nowhere otherwise.
    """
    endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    resource = Resource.create(
        {
            "service.name": os.environ.get("OTEL_SERVICE_NAME", "agile-dashboard"),
            "service.version": os.environ.get("SERVICE_VERSION", "4.2.0"),
        }
    )
    provider = TracerProvider(resource=resource)

    if endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
            logger.info(f"OTLP exporter configured: {endpoint}")
        except Exception as e:
            logger.warning(f"Failed to configure OTLP exporter: {e}. Using console exporter.", exc_info=True)
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    elif os.environ.get("OTEL_CONSOLE_EXPORT", "false").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        logger.info("No OTEL_EXPORTER_OTLP_ENDPOINT set. Tracing disabled.")

    trace.set_tracer_provider(provider)


def get_tracer(name: str = "agile-dashboard"):
    """Get a tracer instance."""
    return trace.get_tracer(name)
