"""Span synthesis: tracer construction and the recursive build walker."""

from .builder import SkippedBuild, TraceSummary, TraceTreeBuilder, TraversalContext
from .tracer import LoggingSpanProcessor, OtelTracerFactory, TracerFactory, TracerHandle, to_unix_nanos

__all__ = [
    "LoggingSpanProcessor",
    "OtelTracerFactory",
    "SkippedBuild",
    "TraceSummary",
    "TraceTreeBuilder",
    "TracerFactory",
    "TracerHandle",
    "TraversalContext",
    "to_unix_nanos",
]
