"""Exception hierarchy for build-trace.

All exceptions inherit from BuildTraceError, so the CLI can tell expected
failures apart from programming errors with a single except clause.
"""


class BuildTraceError(Exception):
    """Base exception for all build-trace errors."""


class DecodeError(BuildTraceError):
    """Raised when a build or job payload cannot be parsed into its model."""


class SlugParseError(BuildTraceError):
    """Raised when a build slug does not split into organization/pipeline/number."""


class NotReadyError(BuildTraceError):
    """Raised when the requested build has not finished yet.

    Informational rather than fatal: a build without ``finished_at`` has no
    end time to close its span with, so it cannot be traced yet.
    """

    def __init__(self, build_id: str) -> None:
        super().__init__(f"Build {build_id} has not finished")
        self.build_id = build_id


class TracerInitError(BuildTraceError):
    """Raised when a tracer for a service cannot be constructed."""


class TransportError(BuildTraceError):
    """Raised when fetching build data from the CI API fails."""
