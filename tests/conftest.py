"""Common test fixtures for build-trace."""

from collections.abc import Generator

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from build_trace.tracing import OtelTracerFactory


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """In-memory exporter collecting every span the factory's tracers finish."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_factory(span_exporter: InMemorySpanExporter) -> Generator[OtelTracerFactory]:
    """Factory exporting synchronously into ``span_exporter``."""
    factory = OtelTracerFactory(span_exporter, batch=False, log_spans=False)
    yield factory
    factory.shutdown()
