"""Retroactive span tree synthesis for finished builds.

A build becomes one span; each command or trigger job becomes a child span
of it; the build a trigger job started becomes a child of that job's span.
Every start and end time comes from the build records, never from the local
clock.

Traversal is depth-first. A ``TraversalContext`` created per top-level call
remembers which builds were already traced so triggers that loop back, or
reach the same build twice, are traced at most once.
"""

from dataclasses import dataclass, field
from datetime import datetime

from opentelemetry import trace as otel_trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, Status, StatusCode

from build_trace.builds import Build, BuildSlug, CommandJob, TriggeredBuildRef, TriggerJob, WaitJob
from build_trace.exceptions import NotReadyError
from build_trace.fetch import BuildGraphFetcher
from build_trace.logging import get_pipeline_logger
from build_trace.settings import TracerScope
from build_trace.tracing.tracer import TracerFactory, TracerHandle, to_unix_nanos

logger = get_pipeline_logger(__name__)

DEFAULT_MAX_DEPTH = 25
JOB_SPAN_NAME = "Execute"


@dataclass(frozen=True, slots=True)
class SkippedBuild:
    """A build reached during traversal that produced no spans."""

    build_id: str
    reason: str


@dataclass(slots=True)
class TraceSummary:
    """What one top-level trace emitted."""

    root: str
    builds_traced: int = 0
    spans_emitted: int = 0
    skipped: list[SkippedBuild] = field(default_factory=list)


@dataclass(slots=True)
class TraversalContext:
    """Per-invocation traversal state, passed explicitly through the recursion.

    ``visited`` holds every build id already entered. ``tracers`` caches one
    handle per service so each is released exactly once, after all spans
    opened against it have ended.
    """

    summary: TraceSummary
    visited: set[str] = field(default_factory=set)
    tracers: dict[str, TracerHandle] = field(default_factory=dict)

    def tracer_for(self, factory: TracerFactory, service_name: str) -> TracerHandle:
        """Return the cached handle for ``service_name``, creating it on first use."""
        handle = self.tracers.get(service_name)
        if handle is None:
            handle = factory.create(service_name)
            self.tracers[service_name] = handle
        return handle

    def release_tracers(self) -> None:
        """Release every handle, most recently created first."""
        while self.tracers:
            _, handle = self.tracers.popitem()
            handle.release()


def _child_context(parent: Span | None) -> Context:
    """Context carrying ``parent``, or an empty one so roots never inherit ambient spans."""
    if parent is None:
        return Context()
    return otel_trace.set_span_in_context(parent, Context())


def _seconds_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds()


class TraceTreeBuilder:
    """Builds the span tree for a build and every build it triggered.

    Args:
        fetcher: Source of decoded builds.
        tracer_factory: Creates tracers per service name.
        scope: Which service name job spans are reported under.
        max_depth: Triggered builds nested deeper than this are skipped.
    """

    def __init__(
        self,
        fetcher: BuildGraphFetcher,
        tracer_factory: TracerFactory,
        *,
        scope: TracerScope = TracerScope.PIPELINE,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._fetcher = fetcher
        self._tracer_factory = tracer_factory
        self._scope = scope
        self._max_depth = max_depth

    def trace(self, slug: BuildSlug | str) -> TraceSummary:
        """Trace ``slug`` and everything it triggered.

        Tracers opened along the way are released before returning, also
        when the traversal fails.

        Raises:
            NotReadyError: The top-level build has not finished.
            BuildTraceError: Any fetch, decode, slug or tracer failure.
        """
        root = slug if isinstance(slug, BuildSlug) else BuildSlug.parse(slug)
        ctx = TraversalContext(summary=TraceSummary(root=str(root)))
        try:
            self.trace_build(root, None, ctx)
        finally:
            ctx.release_tracers()
        return ctx.summary

    def trace_build(self, build_id: BuildSlug, parent: Span | None, ctx: TraversalContext, depth: int = 0) -> None:
        """Emit the span tree of one build under ``parent``.

        A build id already in ``ctx.visited`` is a no-op. A build cut off by
        ``max_depth`` is not marked visited, so a shorter trigger path can
        still trace it. An unfinished build raises NotReadyError before any
        span is opened.
        """
        key = str(build_id)
        if key in ctx.visited:
            logger.debug("Build %s already traced, skipping", key)
            return

        if depth > self._max_depth:
            logger.warning("Not following %s, trigger depth %d exceeds %d", key, depth, self._max_depth)
            ctx.summary.skipped.append(SkippedBuild(build_id=key, reason="max-depth"))
            return

        ctx.visited.add(key)
        ctx.summary.skipped = [skipped for skipped in ctx.summary.skipped if skipped.build_id != key]

        logger.info("Fetching jobs for %s", key)
        build = self._fetcher.fetch(build_id)
        logger.info("Found build %s, with %d jobs", build.uuid, len(build.jobs))

        if build.uuid in ctx.visited:
            logger.debug("Build %s reached again as %s, skipping", build.uuid, key)
            return
        ctx.visited.add(build.uuid)

        if not build.is_finished:
            raise NotReadyError(key)

        self._emit_build(build, parent, ctx, depth)
        ctx.summary.builds_traced += 1

    def _emit_build(self, build: Build, parent: Span | None, ctx: TraversalContext, depth: int) -> None:
        assert build.finished_at is not None
        assert build.span_start is not None
        pipeline_tracer = ctx.tracer_for(self._tracer_factory, build.slug.pipeline_slug)

        attributes: dict[str, str | float] = {
            "URL": build.url,
            "build.uuid": build.uuid,
            "build.slug": str(build.slug),
        }
        if (queued := _seconds_between(build.scheduled_at, build.started_at)) is not None:
            attributes["build.queue_seconds"] = queued

        build_span = pipeline_tracer.tracer.start_span(
            f"Build {build.uuid}",
            context=_child_context(parent),
            start_time=to_unix_nanos(build.span_start),
            attributes=attributes,
        )
        ctx.summary.spans_emitted += 1

        for job in build.jobs:
            match job:
                case WaitJob():
                    logger.info("Found a wait, moving to next group")
                case CommandJob() | TriggerJob():
                    self._emit_job(job, build, build_span, ctx, depth)

        build_span.end(end_time=to_unix_nanos(build.finished_at))

    def _emit_job(self, job: CommandJob | TriggerJob, build: Build, build_span: Span, ctx: TraversalContext, depth: int) -> None:
        if job.started_at is None or job.finished_at is None:
            if job.triggered is not None:
                # The child build still happened; hang it off the build span instead.
                logger.info("Job %s (%s) has no run times, nesting its triggered build under build %s", job.uuid, job.display_name, build.uuid)
                self._follow_trigger(job.triggered, build_span, ctx, depth)
            else:
                logger.info("Job %s (%s) never ran to completion, no span emitted", job.uuid, job.display_name)
            return

        if self._scope == TracerScope.JOB_LABEL:
            handle = ctx.tracer_for(self._tracer_factory, job.display_name)
            name = JOB_SPAN_NAME
        else:
            handle = ctx.tracer_for(self._tracer_factory, build.slug.pipeline_slug)
            name = job.display_name

        attributes: dict[str, str | float] = {
            "UUID": job.uuid,
            "URL": build.url,
            "job.label": job.label,
        }
        if job.state is not None:
            attributes["job.state"] = str(job.state)
        if isinstance(job, CommandJob):
            attributes["job.command"] = job.command
            if (queued := _seconds_between(job.runnable_at, job.started_at)) is not None:
                attributes["job.queue_seconds"] = queued
        if job.triggered is not None and job.triggered.url:
            attributes["job.triggered_url"] = job.triggered.url

        job_span = handle.tracer.start_span(
            name,
            context=_child_context(build_span),
            start_time=to_unix_nanos(job.started_at),
            attributes=attributes,
        )
        ctx.summary.spans_emitted += 1
        if job.is_failure:
            job_span.set_status(Status(StatusCode.ERROR, f"job {str(job.state).lower()}"))

        if job.triggered is not None:
            self._follow_trigger(job.triggered, job_span, ctx, depth)

        job_span.end(end_time=to_unix_nanos(job.finished_at))

    def _follow_trigger(self, ref: TriggeredBuildRef, parent: Span, ctx: TraversalContext, depth: int) -> None:
        """Trace the triggered build under ``parent``. An unfinished child is recorded and skipped."""
        child = ref.build_slug()
        try:
            self.trace_build(child, parent, ctx, depth + 1)
        except NotReadyError:
            logger.info("Triggered build %s has not finished, skipping", child)
            ctx.summary.skipped.append(SkippedBuild(build_id=str(child), reason="not-ready"))
