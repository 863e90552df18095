"""Build and job models plus the decoder that produces them."""

from ._types import BuildSlug, JobState
from .decoder import decode_build, decode_job, decode_jobs
from .models import Build, CommandJob, Job, TriggeredBuildRef, TriggerJob, WaitJob

__all__ = [
    "Build",
    "BuildSlug",
    "CommandJob",
    "Job",
    "JobState",
    "TriggerJob",
    "TriggeredBuildRef",
    "WaitJob",
    "decode_build",
    "decode_job",
    "decode_jobs",
]
