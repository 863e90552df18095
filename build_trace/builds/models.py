"""Pydantic models for builds and their jobs.

Field aliases follow the GraphQL schema (camelCase, ``__typename``) so raw
nodes validate directly; attribute names are snake_case.
"""

import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Discriminator, Field

from build_trace.builds._types import BuildSlug, coerce_job_state, is_failure_state
from build_trace.exceptions import SlugParseError

_RFC3339 = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?(?P<offset>Z|[+-]\d{2}:\d{2})$",
    re.IGNORECASE,
)

def parse_rfc3339(value: Any) -> datetime | None:
    """Strictly parse an RFC 3339 date-time string. ``None`` passes through.

    Fractional seconds beyond microsecond precision are truncated. Anything
    that is not a zone-qualified date-time string is rejected.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("timestamp must carry a UTC offset")
        return value
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be an RFC 3339 string, got {type(value).__name__}")
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp {value!r}")
    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")
    offset = "+00:00" if match["offset"].upper() == "Z" else match["offset"]
    return datetime.fromisoformat(f"{match['date']}T{match['time']}.{fraction}{offset}")

Timestamp = Annotated[datetime | None, BeforeValidator(parse_rfc3339)]

State = Annotated[str, AfterValidator(coerce_job_state)]

class TriggeredBuildRef(BaseModel):
    """Reference from a trigger job to the build it started."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    slug: str | None = None
    url: str | None = None

    def build_slug(self) -> BuildSlug:
        """Resolve the referenced build. Raises SlugParseError when neither form is usable."""
        if self.slug:
            return BuildSlug.parse(self.slug)
        if self.url:
            return BuildSlug.from_url(self.url)
        raise SlugParseError("Triggered build reference has neither slug nor url")

class _TimedJob(BaseModel):
    """Fields shared by the job variants that occupy time on the build timeline."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    uuid: str
    label: str = ""
    state: State | None = None
    created_at: Timestamp = Field(default=None, alias="createdAt")
    started_at: Timestamp = Field(default=None, alias="startedAt")
    finished_at: Timestamp = Field(default=None, alias="finishedAt")
    triggered: TriggeredBuildRef | None = None

    @property
    def is_failure(self) -> bool:
        """Whether the job ended in a failing terminal state."""
        return is_failure_state(self.state)

    @property
    def display_name(self) -> str:
        return self.label or self.uuid

class CommandJob(_TimedJob):
    """A job that ran a command on an agent, possibly one that started another build.

    ``state`` is a JobState for the states it lists and the raw string for
    anything newer.
    """

    type_name: Literal["JobTypeCommand"] = Field(default="JobTypeCommand", alias="__typename")
    state: State
    command: str = ""
    runnable_at: Timestamp = Field(default=None, alias="runnableAt")

    @property
    def display_name(self) -> str:
        """Label, or the command when the step has no label."""
        return self.label or self.command or self.uuid

class TriggerJob(_TimedJob):
    """A job that started a build of another pipeline.

    ``triggered`` is None until the child build has been created.
    """

    type_name: Literal["JobTypeTrigger"] = Field(default="JobTypeTrigger", alias="__typename")

class WaitJob(BaseModel):
    """A wait step separating two groups of jobs. Never becomes a span."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    type_name: Literal["JobTypeWait"] = Field(default="JobTypeWait", alias="__typename")
    uuid: str = ""
    state: State | None = None


Job = Annotated[CommandJob | TriggerJob | WaitJob, Discriminator("type_name")]


class Build(BaseModel):
    """One execution of a pipeline with its jobs in chronological order."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    uuid: str
    slug: BuildSlug
    url: str = ""
    created_at: Timestamp = Field(default=None, alias="createdAt")
    scheduled_at: Timestamp = Field(default=None, alias="scheduledAt")
    started_at: Timestamp = Field(default=None, alias="startedAt")
    finished_at: Timestamp = Field(default=None, alias="finishedAt")
    jobs: tuple[Job, ...] = ()

    @property
    def is_finished(self) -> bool:
        """Only finished builds can be traced."""
        return self.finished_at is not None

    @property
    def span_start(self) -> datetime | None:
        """Start of the build span: scheduled, else created, else started, else finished."""
        return self.scheduled_at or self.created_at or self.started_at or self.finished_at

__all__ = ["Build", "CommandJob", "Job", "State", "Timestamp", "TriggerJob", "TriggeredBuildRef", "WaitJob", "parse_rfc3339"]
