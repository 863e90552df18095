"""Command-line entry point: trace one finished build and its triggered builds.

Exit codes:
    0: the build and every reachable triggered build were traced
    1: the build has not finished yet (informational)
    2: any other failure (bad slug, API error, undecodable payload, tracer failure)
"""

import argparse
import time
from pathlib import Path
from typing import Any

from build_trace.builds import BuildSlug
from build_trace.exceptions import BuildTraceError, NotReadyError
from build_trace.fetch import BuildGraphFetcher, MemoryBuildFetcher, create_fetcher
from build_trace.logging import get_pipeline_logger, setup_logging
from build_trace.settings import Settings, TracerScope, Transport, settings
from build_trace.tracing import OtelTracerFactory, TraceTreeBuilder

logger = get_pipeline_logger(__name__)

EXIT_OK = 0
EXIT_NOT_READY = 1
EXIT_FAILURE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="build-trace", description="Retroactively trace a finished CI build")
    parser.add_argument("--slug", required=True, help="The slug of the build, e.g. acme-inc/my-pipeline/123")
    parser.add_argument("--token", default=None, help="API token (defaults to BUILDKITE_API_TOKEN)")
    parser.add_argument("--transport", choices=[t.value for t in Transport], default=None, help="Fetch builds over GraphQL or REST")
    parser.add_argument("--scope", choices=[s.value for s in TracerScope], default=None, help="Report job spans per pipeline or per job label")
    parser.add_argument("--otlp-endpoint", default=None, help="OTLP gRPC collector endpoint (spans are only logged when unset)")
    parser.add_argument("--insecure", action="store_true", default=None, help="Use a plaintext connection to the collector")
    parser.add_argument("--max-depth", type=int, default=None, help="Deepest chain of triggered builds to follow")
    parser.add_argument("--replay", type=Path, default=None, help="Read recorded GraphQL build objects from a JSON file instead of the API")
    parser.add_argument("--log-level", default=None, help="Log level override (DEBUG, INFO, ...)")
    parser.add_argument("--logging-config", type=Path, default=None, help="YAML logging configuration file")
    return parser


def _apply_overrides(base: Settings, args: argparse.Namespace) -> Settings:
    """Return ``base`` with every flag the user passed applied on top."""
    overrides: dict[str, Any] = {
        "buildkite_api_token": args.token,
        "build_trace_transport": Transport(args.transport) if args.transport else None,
        "build_trace_scope": TracerScope(args.scope) if args.scope else None,
        "otel_exporter_otlp_endpoint": args.otlp_endpoint,
        "otel_exporter_otlp_insecure": args.insecure,
        "max_trigger_depth": args.max_depth,
    }
    return base.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def _open_fetcher(run_settings: Settings, replay: Path | None) -> BuildGraphFetcher:
    if replay is not None:
        return MemoryBuildFetcher.from_json_file(replay)
    return create_fetcher(run_settings)


def run(slug_text: str, run_settings: Settings, *, replay: Path | None = None) -> int:
    """Trace ``slug_text`` with ``run_settings`` and map the outcome to an exit code."""
    try:
        slug = BuildSlug.parse(slug_text)
        tracer_factory = OtelTracerFactory.from_settings(run_settings)
        try:
            with _open_fetcher(run_settings, replay) as fetcher:
                builder = TraceTreeBuilder(
                    fetcher,
                    tracer_factory,
                    scope=run_settings.build_trace_scope,
                    max_depth=run_settings.max_trigger_depth,
                )
                started = time.monotonic()
                summary = builder.trace(slug)
        finally:
            tracer_factory.shutdown()
    except NotReadyError as e:
        logger.info("Not tracing, build not finished: %s", e.build_id)
        return EXIT_NOT_READY
    except BuildTraceError as e:
        logger.error("Tracing %s failed: %s", slug_text, e)
        return EXIT_FAILURE

    logger.info(
        "Traced %d build(s) with %d span(s) in %.2fs",
        summary.builds_traced,
        summary.spans_emitted,
        time.monotonic() - started,
    )
    for skipped in summary.skipped:
        logger.info("Skipped %s (%s)", skipped.build_id, skipped.reason)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = _build_parser().parse_args(argv)
    setup_logging(args.logging_config, level=args.log_level)
    return run(args.slug, _apply_overrides(settings, args), replay=args.replay)


__all__ = ["main", "run"]
