"""
Tracer Factory and NoOp Implementations

get_tracer() returns an OTel-backed tracer once init_tracing() has installed
an SDK TracerProvider, otherwise a NoOpTracer with zero overhead.

Spans only ever carry two things: attributes, and at most one error
recorded by the engine that owns the span (see record_error).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Status, StatusCode

from semantic_search.core.errors import SemanticSearchError


# ---------------------------------------------------------------------------
# PROTOCOLS
# ---------------------------------------------------------------------------


class SpanProtocol(Protocol):
    """What engines may do with an open span."""

    def set_attribute(self, key: str, value: Any) -> None:
        ...

    def record_error(self, error: SemanticSearchError) -> None:
        """Attach the error as an exception event and mark the span failed."""
        ...


class TracerProtocol(Protocol):
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[SpanProtocol]:
        ...


# ---------------------------------------------------------------------------
# NOOP IMPLEMENTATIONS (tracing disabled)
# ---------------------------------------------------------------------------


class NoOpSpan:
    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def record_error(self, error: SemanticSearchError) -> None:
        pass


class NoOpTracer:
    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[NoOpSpan]:
        yield NoOpSpan()


# ---------------------------------------------------------------------------
# OTEL-BACKED
# ---------------------------------------------------------------------------


class OTelSpan:
    """Adapts an OTel span to SpanProtocol."""

    def __init__(self, span: Any):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def record_error(self, error: SemanticSearchError) -> None:
        self._span.record_exception(error, attributes={"error.status_code": error.status_code})
        self._span.set_status(Status(StatusCode.ERROR, error.message))


class OTelTracer:
    """
    Adapts an OTel tracer to TracerProtocol.

    Automatic exception recording is off: engines decide which failures
    are span errors (a skipped deleted document is not one).
    """

    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[OTelSpan]:
        with self._tracer.start_as_current_span(
            name,
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield OTelSpan(span)


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


_tracer: TracerProtocol | None = None


def get_tracer(service_name: str = "semantic-search") -> TracerProtocol:
    """
    Get the process-wide tracer, creating it on first use.

    Args:
        service_name: Instrumentation scope name (used on first call only)
    """
    global _tracer
    if _tracer is None:
        _tracer = _select_tracer(service_name)
    return _tracer


def _select_tracer(service_name: str) -> TracerProtocol:
    from semantic_search.observability.config import get_config

    if not get_config().enabled:
        return NoOpTracer()
    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        # init_tracing() has not installed the SDK provider
        return NoOpTracer()
    return OTelTracer(trace.get_tracer(service_name))


def reset_tracer() -> None:
    """Reset tracer (useful for testing)."""
    global _tracer
    _tracer = None
