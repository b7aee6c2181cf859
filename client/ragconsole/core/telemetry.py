"""
Telemetry module for OpenTelemetry tracing.

Configures spans around retrieval, generation, and upload calls so a slow
or failing backend round trip can be located from the console.
"""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_tracer: trace.Tracer | None = None


def setup_telemetry(service_name: str, console_export: bool = False) -> None:
    """
    Initialize OpenTelemetry with an optional console exporter.

    Args:
        service_name: Value for the ``service.name`` resource attribute.
        console_export: When true, finished spans are printed to stdout.
    """
    global _tracer

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console span export enabled.")
    else:
        logger.info("Span export disabled.")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)


def get_tracer() -> trace.Tracer:
    """Return the console tracer, initializing a no-op if not set up."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("rag-console")
    return _tracer
