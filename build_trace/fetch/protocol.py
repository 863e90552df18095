"""Build fetcher protocol.

Defines the BuildGraphFetcher protocol every transport implements. The
tracer only ever talks to a fetcher through ``fetch``.
"""

from typing import Protocol, Self, runtime_checkable

from build_trace.builds import Build, BuildSlug


@runtime_checkable
class BuildGraphFetcher(Protocol):
    """Protocol for build data sources.

    Implementations: GraphQLBuildFetcher (default), RestBuildFetcher,
    MemoryBuildFetcher (testing and offline replay).
    """

    def fetch(self, slug: BuildSlug) -> Build:
        """Return the decoded build for ``slug``.

        Raises:
            TransportError: The API could not be reached or returned an error.
            DecodeError: The API answered with a payload that does not parse.
        """
        ...

    def close(self) -> None:
        """Release any connections held by the fetcher."""
        ...

    def __enter__(self) -> Self: ...

    def __exit__(self, *exc_info: object) -> None: ...
