"""Decoding of raw GraphQL build records into typed models.

Job nodes are polymorphic: each one is read for its ``__typename`` first and
then parsed by the model for that variant only. Variants the tracer has no
use for are logged and dropped instead of being half-parsed.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from build_trace.builds._types import BuildSlug, JobState
from build_trace.builds.models import Build, CommandJob, Job, TriggerJob, WaitJob
from build_trace.exceptions import DecodeError
from build_trace.logging import get_pipeline_logger

logger = get_pipeline_logger(__name__)

COMMAND_JOB_TYPE = "JobTypeCommand"
TRIGGER_JOB_TYPE = "JobTypeTrigger"
WAIT_JOB_TYPE = "JobTypeWait"

_VARIANTS: dict[str, type[CommandJob] | type[TriggerJob] | type[WaitJob]] = {
    COMMAND_JOB_TYPE: CommandJob,
    TRIGGER_JOB_TYPE: TriggerJob,
    WAIT_JOB_TYPE: WaitJob,
}


class _NodeHeader(BaseModel):
    """Discriminator of a job node, read before committing to a variant."""

    model_config = ConfigDict(extra="ignore")

    type_name: str = Field(alias="__typename")
    uuid: str = ""


class _BuildHeader(BaseModel):
    """Build-level fields of the GraphQL ``build`` object, jobs excluded."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    url: str = ""
    created_at: Any = Field(default=None, alias="createdAt")
    scheduled_at: Any = Field(default=None, alias="scheduledAt")
    started_at: Any = Field(default=None, alias="startedAt")
    finished_at: Any = Field(default=None, alias="finishedAt")


def _describe(error: ValidationError) -> str:
    """First validation problem as ``loc: message``."""
    first = error.errors()[0]
    loc = ".".join(str(part) for part in first["loc"])
    return f"{loc}: {first['msg']}" if loc else first["msg"]


def decode_job(node: Mapping[str, Any]) -> Job | None:
    """Decode one job node, or return None for variants that are not traced.

    Raises:
        DecodeError: The node has no discriminator, or its variant's fields
            (state, timestamps) do not parse.
    """
    try:
        header = _NodeHeader.model_validate(node)
    except ValidationError as e:
        raise DecodeError(f"Job node without a type discriminator: {_describe(e)}") from e

    variant = _VARIANTS.get(header.type_name)
    if variant is None:
        logger.info("Unhandled job type %s", header.type_name)
        return None

    try:
        return variant.model_validate(node)
    except ValidationError as e:
        raise DecodeError(f"Invalid {header.type_name} {header.uuid or '<no uuid>'}: {_describe(e)}") from e


def decode_jobs(raw_nodes: Sequence[Mapping[str, Any]], *, newest_first: bool = True) -> list[Job]:
    """Normalize raw job nodes into a chronological job sequence.

    Skipped jobs and untraced variants are dropped. The API returns
    jobs most-recent-first, so the collected sequence is reversed; pass
    ``newest_first=False`` for sources that are already oldest-first.

    Returns:
        Jobs ordered oldest first. Callers rely on this order without sorting.
    """
    jobs: list[Job] = []
    for node in raw_nodes:
        job = decode_job(node)
        if job is None:
            continue
        if isinstance(job, CommandJob | TriggerJob) and job.state == JobState.SKIPPED:
            logger.debug("Dropping skipped job %s (%s)", job.uuid, job.display_name)
            continue
        jobs.append(job)

    if newest_first:
        jobs.reverse()
    return jobs


def _edge_nodes(raw_build: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Pull ``jobs.edges[].node`` out of a build object."""
    connection = raw_build.get("jobs") or {}
    if not isinstance(connection, Mapping):
        raise DecodeError("Build jobs must be a connection object with edges")
    edges = connection.get("edges") or []
    if not isinstance(edges, list):
        raise DecodeError("Build jobs edges must be a list")
    nodes: list[Mapping[str, Any]] = []
    for edge in edges:
        node = edge.get("node") if isinstance(edge, Mapping) else None
        if not isinstance(node, Mapping):
            raise DecodeError("Job edge without a node object")
        nodes.append(node)
    return nodes


def decode_build(raw_build: Mapping[str, Any], slug: BuildSlug) -> Build:
    """Decode a GraphQL ``build`` object into a Build with ordered jobs.

    Raises:
        DecodeError: Missing uuid, malformed timestamps or malformed jobs.
    """
    try:
        header = _BuildHeader.model_validate(raw_build)
    except ValidationError as e:
        raise DecodeError(f"Invalid build {slug}: {_describe(e)}") from e

    jobs = decode_jobs(_edge_nodes(raw_build))
    try:
        return Build(
            uuid=header.uuid,
            slug=slug,
            url=header.url,
            created_at=header.created_at,
            scheduled_at=header.scheduled_at,
            started_at=header.started_at,
            finished_at=header.finished_at,
            jobs=tuple(jobs),
        )
    except ValidationError as e:
        raise DecodeError(f"Invalid build {slug}: {_describe(e)}") from e


__all__ = ["COMMAND_JOB_TYPE", "TRIGGER_JOB_TYPE", "WAIT_JOB_TYPE", "decode_build", "decode_job", "decode_jobs"]
