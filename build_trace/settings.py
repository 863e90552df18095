"""Core configuration settings for build-trace.

Settings are loaded from environment variables with .env file support via
pydantic-settings.

Environment variables:
    BUILDKITE_API_TOKEN: API token used by both the GraphQL and REST transports
    BUILDKITE_GRAPHQL_URL: GraphQL endpoint
    BUILDKITE_REST_URL: REST API base URL
    BUILD_TRACE_TRANSPORT: "graphql" (default) or "rest"
    BUILD_TRACE_SCOPE: tracer scoping policy, "pipeline" (default) or "job-label"
    MAX_TRIGGER_DEPTH: deepest chain of triggered builds that is followed
    GRAPHQL_JOB_LIMIT: number of job edges requested per build
    HTTP_TIMEOUT: per-request timeout in seconds
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP gRPC collector; empty means spans are only logged
    OTEL_EXPORTER_OTLP_INSECURE: disable TLS towards the collector

Configuration precedence:
    1. Command-line flags (applied with ``model_copy(update=...)``)
    2. Environment variables
    3. .env file in current directory
    4. Default values

Example:
    >>> from build_trace.settings import settings
    >>> print(settings.buildkite_graphql_url)
    https://graphql.buildkite.com/v1

Note:
    Settings are loaded once at module import and frozen.
"""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Transport(StrEnum):
    """Backing transport for fetching build records."""

    GRAPHQL = "graphql"
    REST = "rest"


class TracerScope(StrEnum):
    """Which service name spans are reported under.

    PIPELINE: one tracer per pipeline slug for build and job spans.
    JOB_LABEL: build spans under the pipeline tracer, job spans under a tracer
    named after the job label.
    """

    PIPELINE = "pipeline"
    JOB_LABEL = "job-label"


class Settings(BaseSettings):
    """Configuration for build-trace transports and span export.

    Attributes:
        buildkite_api_token: Opaque bearer token passed to the CI API.
        buildkite_graphql_url: GraphQL endpoint used by the graphql transport.
        buildkite_rest_url: REST base URL used by the rest transport.
        build_trace_transport: Which transport fetches build records.
        build_trace_scope: Tracer scoping policy.
        max_trigger_depth: Triggered builds nested deeper than this are skipped.
        graphql_job_limit: ``first:`` argument of the jobs connection.
        http_timeout: Seconds before an HTTP request is abandoned.
        otel_exporter_otlp_endpoint: OTLP gRPC collector endpoint. Empty
            disables export; spans are then only written to the log.
        otel_exporter_otlp_insecure: Use a plaintext gRPC channel.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # CI API
    buildkite_api_token: str = ""
    buildkite_graphql_url: str = "https://graphql.buildkite.com/v1"
    buildkite_rest_url: str = "https://api.buildkite.com/v2"
    build_trace_transport: Transport = Transport.GRAPHQL
    graphql_job_limit: int = Field(default=500, ge=1)
    http_timeout: float = Field(default=30.0, gt=0)

    # Traversal
    build_trace_scope: TracerScope = TracerScope.PIPELINE
    max_trigger_depth: int = Field(default=25, ge=0)

    # Span export
    otel_exporter_otlp_endpoint: str = ""
    otel_exporter_otlp_insecure: bool = False


settings = Settings()
"""Global settings instance, created at import time."""
