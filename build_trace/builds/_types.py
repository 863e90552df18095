"""Domain-specific types for builds and jobs."""

from enum import StrEnum
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from build_trace.exceptions import SlugParseError


class JobState(StrEnum):
    """Job states as reported by the Buildkite API (upper-case GraphQL form).

    The API adds states over time. Job models keep a state missing from this
    list as a plain string instead of rejecting the job.
    """

    PENDING = "PENDING"
    WAITING = "WAITING"
    WAITING_FAILED = "WAITING_FAILED"
    BLOCKED = "BLOCKED"
    BLOCKED_FAILED = "BLOCKED_FAILED"
    UNBLOCKED = "UNBLOCKED"
    UNBLOCKED_FAILED = "UNBLOCKED_FAILED"
    LIMITING = "LIMITING"
    LIMITED = "LIMITED"
    PLATFORM_LIMITING = "PLATFORM_LIMITING"
    PLATFORM_LIMITED = "PLATFORM_LIMITED"
    SCHEDULED = "SCHEDULED"
    ASSIGNED = "ASSIGNED"
    ACCEPTED = "ACCEPTED"
    RUNNING = "RUNNING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    CANCELING = "CANCELING"
    CANCELED = "CANCELED"
    TIMING_OUT = "TIMING_OUT"
    TIMED_OUT = "TIMED_OUT"
    SKIPPED = "SKIPPED"
    BROKEN = "BROKEN"
    EXPIRED = "EXPIRED"

    @property
    def is_failure(self) -> bool:
        """Whether the job ended in a failing terminal state."""
        return self in _FAILURE_STATES


_FAILURE_STATES = frozenset({JobState.FAILED, JobState.TIMED_OUT, JobState.BROKEN, JobState.EXPIRED})


def coerce_job_state(value: str) -> JobState | str:
    """Map a state string onto JobState, keeping states this enum does not list as plain strings."""
    try:
        return JobState(value)
    except ValueError:
        return value


def is_failure_state(state: str | None) -> bool:
    """Whether ``state`` is a failing terminal state. Unlisted states never are."""
    return state in _FAILURE_STATES


class BuildSlug(BaseModel):
    """Identifier of a single build: ``organization/pipeline/number``."""

    model_config = ConfigDict(frozen=True)

    organization: str
    pipeline: str
    number: str

    @classmethod
    def parse(cls, text: str) -> "BuildSlug":
        """Split ``org/pipeline/number``. Raises SlugParseError on any other shape."""
        parts = text.strip().split("/")
        if len(parts) != 3 or not all(parts):
            raise SlugParseError(f"Invalid build slug {text!r}, expected organization/pipeline/number")
        return cls(organization=parts[0], pipeline=parts[1], number=parts[2])

    @classmethod
    def from_url(cls, url: str) -> "BuildSlug":
        """Derive a slug from a build URL.

        Accepts web URLs (``https://buildkite.com/org/pipe/builds/42``) and
        REST URLs (``https://api.buildkite.com/v2/organizations/org/pipelines/pipe/builds/42``).
        """
        segments = [s for s in urlsplit(url).path.split("/") if s]
        try:
            builds_at = len(segments) - 1 - segments[::-1].index("builds")
        except ValueError:
            raise SlugParseError(f"Cannot derive a build slug from URL {url!r}") from None
        if builds_at + 1 >= len(segments):
            raise SlugParseError(f"Cannot derive a build slug from URL {url!r}")
        number = segments[builds_at + 1]

        if "organizations" in segments and "pipelines" in segments:
            org = segments[segments.index("organizations") + 1]
            pipeline = segments[segments.index("pipelines") + 1]
        elif builds_at >= 2:
            org, pipeline = segments[builds_at - 2], segments[builds_at - 1]
        else:
            raise SlugParseError(f"Cannot derive a build slug from URL {url!r}")
        return cls.parse(f"{org}/{pipeline}/{number}")

    @property
    def pipeline_slug(self) -> str:
        """Path portion of the slug, ``organization/pipeline``."""
        return f"{self.organization}/{self.pipeline}"

    def __str__(self) -> str:
        return f"{self.organization}/{self.pipeline}/{self.number}"


__all__ = ["BuildSlug", "JobState", "coerce_job_state", "is_failure_state"]
