"""
Observability Module - OpenTelemetry tracing

USAGE:
------
# At application startup:
from semantic_search.observability import init_tracing

init_tracing()  # Installs an SDK provider if TRACING_ENABLED=true

# In code that needs tracing:
from semantic_search.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("my_operation", attributes={"key": "value"}) as span:
    # ... do work ...
    span.set_attribute("result", "success")
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from semantic_search.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)
from semantic_search.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from semantic_search.observability.attributes import (
    SEARCH_K,
    SEARCH_RESULT_COUNT,
    SEARCH_SKIPPED_COUNT,
    SEARCH_TOP_SCORE,
    INGEST_DOCUMENT_ID,
    INGEST_BATCH_SIZE,
    INGEST_EMBEDDED,
    search_attributes,
    ingest_attributes,
)

logger = logging.getLogger(__name__)

_tracing_initialized = False


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Initialize OpenTelemetry tracing.

    This should be called once at application startup.

    Args:
        config: Optional config (uses env vars if not provided)

    Returns:
        True if tracing was initialized, False if disabled
    """
    global _tracing_initialized
    if _tracing_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    if config.collector_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
        logger.info(f"Exporting spans to {config.collector_endpoint}")
    else:
        exporter = ConsoleSpanExporter()
        logger.info("Exporting spans to console")

    provider = TracerProvider(resource=Resource.create({"service.name": config.service_name}))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    reset_tracer()
    _tracing_initialized = True
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and release the exporter."""
    global _tracing_initialized

    if not _tracing_initialized:
        return

    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()

    reset_tracer()
    reset_config()
    _tracing_initialized = False


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "SEARCH_K",
    "SEARCH_RESULT_COUNT",
    "SEARCH_SKIPPED_COUNT",
    "SEARCH_TOP_SCORE",
    "INGEST_DOCUMENT_ID",
    "INGEST_BATCH_SIZE",
    "INGEST_EMBEDDED",
    # Helpers
    "search_attributes",
    "ingest_attributes",
]
