"""build-trace: retroactive distributed traces for finished CI builds.

Fetches a finished build with its jobs, decodes the polymorphic job records
into a chronological sequence, and replays them as OpenTelemetry spans with
their historical timestamps. Builds triggered by a job are traced as children
of that job's span.

Quick Start:
    >>> from build_trace import MemoryBuildFetcher, OtelTracerFactory, TraceTreeBuilder
    >>>
    >>> fetcher = MemoryBuildFetcher({"acme/app/1": raw_build})
    >>> summary = TraceTreeBuilder(fetcher, OtelTracerFactory()).trace("acme/app/1")
    >>> print(summary.spans_emitted)

Environment Variables:
    - BUILDKITE_API_TOKEN: token for the GraphQL/REST API
    - OTEL_EXPORTER_OTLP_ENDPOINT: collector receiving the spans
"""

from .builds import Build, BuildSlug, CommandJob, Job, JobState, TriggeredBuildRef, TriggerJob, WaitJob, decode_build, decode_jobs
from .exceptions import BuildTraceError, DecodeError, NotReadyError, SlugParseError, TracerInitError, TransportError
from .fetch import BuildGraphFetcher, GraphQLBuildFetcher, MemoryBuildFetcher, RestBuildFetcher, create_fetcher
from .logging import get_pipeline_logger, setup_logging
from .settings import Settings, TracerScope, Transport, settings
from .tracing import OtelTracerFactory, TracerFactory, TracerHandle, TraceSummary, TraceTreeBuilder, TraversalContext

__version__ = "0.1.0"

__all__ = [
    "Build",
    "BuildGraphFetcher",
    "BuildSlug",
    "BuildTraceError",
    "CommandJob",
    "DecodeError",
    "GraphQLBuildFetcher",
    "Job",
    "JobState",
    "MemoryBuildFetcher",
    "NotReadyError",
    "OtelTracerFactory",
    "RestBuildFetcher",
    "Settings",
    "SlugParseError",
    "TraceSummary",
    "TraceTreeBuilder",
    "TracerFactory",
    "TracerHandle",
    "TracerInitError",
    "TracerScope",
    "Transport",
    "TransportError",
    "TraversalContext",
    "TriggerJob",
    "TriggeredBuildRef",
    "WaitJob",
    "create_fetcher",
    "decode_build",
    "decode_jobs",
    "get_pipeline_logger",
    "setup_logging",
    "settings",
]
