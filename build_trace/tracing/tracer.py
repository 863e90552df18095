"""OpenTelemetry tracers for retroactive span export.

Every service name gets its own ``TracerProvider`` so the backend groups
spans by pipeline (or job label). Spans are always sampled, logged as they
are reported and, when an exporter is configured, exported.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from opentelemetry.context import Context
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter, SpanExportResult
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import Tracer

from build_trace.exceptions import TracerInitError
from build_trace.logging import get_pipeline_logger
from build_trace.settings import Settings

logger = get_pipeline_logger(__name__)

INSTRUMENTATION_NAME = "build_trace"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_unix_nanos(moment: datetime) -> int:
    """Convert an aware datetime to integer nanoseconds since the epoch, without float rounding."""
    delta = moment - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def _hex_span_id(span_id: int) -> str:
    """Convert integer span ID to hex string."""
    return format(span_id, "016x")


def _hex_trace_id(trace_id: int) -> str:
    """Convert integer trace ID to hex string."""
    return format(trace_id, "032x")


@dataclass(frozen=True, slots=True)
class TracerHandle:
    """A tracer for one service plus the callable that flushes and releases it."""

    service_name: str
    tracer: Tracer
    release: Callable[[], None]


class TracerFactory(Protocol):
    """Creates tracers scoped to a service name."""

    def create(self, service_name: str) -> TracerHandle:
        """Return a tracer for ``service_name``.

        Raises:
            TracerInitError: The tracer backend could not be constructed.
        """
        ...


class LoggingSpanProcessor(SpanProcessor):
    """Logs every span as it is reported, like a reporter with span logging on."""

    def on_start(self, span: Span, parent_context: Context | None = None) -> None:
        """Nothing to do until the span ends."""

    def on_end(self, span: ReadableSpan) -> None:
        """Log trace, span and parent ids with the span name and service."""
        ctx = span.get_span_context()
        if ctx is None:
            return
        parent_id = _hex_span_id(span.parent.span_id) if span.parent else "0"
        service = span.resource.attributes.get("service.name", "")
        logger.info(
            "Reporting span %s:%s:%s %s (%s)",
            _hex_trace_id(ctx.trace_id),
            _hex_span_id(ctx.span_id),
            parent_id,
            span.name,
            service,
        )

    def shutdown(self) -> None:
        """Nothing to release."""

    def force_flush(self, timeout_millis: int = 30000) -> bool:  # noqa: PLR6301
        """Logging is synchronous, so there is never anything to flush."""
        _ = timeout_millis
        return True


class _SharedSpanExporter(SpanExporter):
    """Lets several providers export through one exporter.

    Shutting a provider down shuts its processors down, which would otherwise
    close the exporter for every other provider. The factory owns the real
    exporter and shuts it down once in ``OtelTracerFactory.shutdown``.
    """

    def __init__(self, exporter: SpanExporter) -> None:
        self._exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        return self._exporter.export(spans)

    def shutdown(self) -> None:
        """Owned by the factory."""

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class OtelTracerFactory:
    """TracerFactory backed by the OpenTelemetry SDK.

    Args:
        exporter: Destination for finished spans. None logs spans only.
        batch: Export through BatchSpanProcessor (default) or SimpleSpanProcessor.
        log_spans: Attach LoggingSpanProcessor to every provider.
    """

    def __init__(self, exporter: SpanExporter | None = None, *, batch: bool = True, log_spans: bool = True) -> None:
        self._exporter = exporter
        self._batch = batch
        self._log_spans = log_spans

    @classmethod
    def from_settings(cls, settings: Settings) -> "OtelTracerFactory":
        """Build a factory exporting over OTLP gRPC when an endpoint is configured.

        Raises:
            TracerInitError: The OTLP exporter could not be constructed.
        """
        if not settings.otel_exporter_otlp_endpoint:
            logger.info("No OTLP endpoint configured, spans will only be logged")
            return cls()
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # noqa: PLC0415

            exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=settings.otel_exporter_otlp_insecure,
            )
        except Exception as e:
            raise TracerInitError(f"Cannot create OTLP exporter for {settings.otel_exporter_otlp_endpoint}: {e}") from e
        return cls(exporter)

    def create(self, service_name: str) -> TracerHandle:
        """Create a provider for ``service_name`` and return its tracer.

        The returned ``release`` shuts the provider down, which flushes every
        span it processed. Calling it a second time is a logged no-op.
        """
        try:
            provider = TracerProvider(resource=Resource.create({"service.name": service_name}), sampler=ALWAYS_ON)
            if self._log_spans:
                provider.add_span_processor(LoggingSpanProcessor())
            if self._exporter is not None:
                shared = _SharedSpanExporter(self._exporter)
                provider.add_span_processor(BatchSpanProcessor(shared) if self._batch else SimpleSpanProcessor(shared))
            tracer = provider.get_tracer(INSTRUMENTATION_NAME)
        except Exception as e:
            raise TracerInitError(f"Cannot create tracer for service {service_name!r}: {e}") from e

        released = False

        def release() -> None:
            nonlocal released
            if released:
                logger.warning("Tracer for %s already released", service_name)
                return
            released = True
            provider.shutdown()

        return TracerHandle(service_name=service_name, tracer=tracer, release=release)

    def shutdown(self) -> None:
        """Shut the shared exporter down. Call after every handle is released."""
        if self._exporter is not None:
            self._exporter.shutdown()
