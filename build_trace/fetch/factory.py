"""Factory function for creating build fetchers based on settings."""

from build_trace.fetch.protocol import BuildGraphFetcher
from build_trace.settings import Settings, Transport


def create_fetcher(settings: Settings) -> BuildGraphFetcher:
    """Create the BuildGraphFetcher selected by ``build_trace_transport``."""
    if settings.build_trace_transport == Transport.REST:
        from build_trace.fetch.rest import RestBuildFetcher

        return RestBuildFetcher(
            base_url=settings.buildkite_rest_url,
            token=settings.buildkite_api_token,
            timeout=settings.http_timeout,
        )

    from build_trace.fetch.graphql import GraphQLBuildFetcher

    return GraphQLBuildFetcher(
        url=settings.buildkite_graphql_url,
        token=settings.buildkite_api_token,
        job_limit=settings.graphql_job_limit,
        timeout=settings.http_timeout,
    )
