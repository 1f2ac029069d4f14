"""
Tracing Configuration

Loads OpenTelemetry settings from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        TRACING_ENABLED: Enable span export (default: false)
        TRACING_SERVICE_NAME: service.name resource attribute (default: semantic-search)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector; spans go to the console if empty
        TRACING_CAPTURE_TEXT: Record query/document text on spans (default: false)
    """

    enabled: bool = False
    service_name: str = "semantic-search"
    collector_endpoint: str | None = None
    capture_text: bool = False  # Query text may be user data; opt-in only

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            service_name=os.environ.get("TRACING_SERVICE_NAME", "semantic-search"),
            collector_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            capture_text=os.environ.get("TRACING_CAPTURE_TEXT", "false").lower() in ("true", "1", "yes"),
        )


# Global config singleton
_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
