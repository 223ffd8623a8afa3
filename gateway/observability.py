"""
Gateway OpenTelemetry Setup

- One span per webhook ingestion (webhook.source / webhook.type attributes)
- OTLP export when OTEL_EXPORTER_OTLP_ENDPOINT is set
"""
from __future__ import annotations
from typing import Optional
import os

import structlog

logger = structlog.get_logger(__name__)


def setup_otel(
    service_name: str = "integration-gateway",
    endpoint: Optional[str] = None,
):
    """Initialize OpenTelemetry and return a tracer, or None if it is not installed."""
    try:
        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.sdk.resources import Resource

        resource = Resource.create({"service.name": service_name})
        provider = TracerProvider(resource=resource)

        otlp_endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        if otlp_endpoint:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
            exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
            provider.add_span_processor(BatchSpanProcessor(exporter))

        trace.set_tracer_provider(provider)
        logger.info("otel_enabled", service=service_name, exporter=bool(otlp_endpoint))
        return trace.get_tracer(service_name)

    except ImportError:
        # Tracing is optional; the pipeline runs without spans
        logger.info("otel_unavailable", service=service_name)
        return None
