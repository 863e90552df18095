"""REST transport for build records.

The REST API returns a flatter job list than GraphQL: a ``type`` string
instead of ``__typename``, lower-case states, snake_case timestamps and jobs
ordered oldest first. Each job is rewritten into the GraphQL node shape so
both transports share one decoder and one filtering policy.
"""

from collections.abc import Mapping
from typing import Any

import httpx

from build_trace.builds import Build, BuildSlug, decode_build
from build_trace.builds.decoder import COMMAND_JOB_TYPE, TRIGGER_JOB_TYPE, WAIT_JOB_TYPE
from build_trace.exceptions import DecodeError, TransportError
from build_trace.fetch._http import HttpFetcherBase

_REST_JOB_TYPES = {
    "script": COMMAND_JOB_TYPE,
    "waiter": WAIT_JOB_TYPE,
    "manual": "JobTypeBlock",
    "trigger": TRIGGER_JOB_TYPE,
}


def _rest_job_to_node(job: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite one REST job into a GraphQL-shaped job node."""
    rest_type = str(job.get("type", ""))
    state = job.get("state")
    node: dict[str, Any] = {
        "__typename": _REST_JOB_TYPES.get(rest_type, rest_type),
        "uuid": job.get("id", ""),
        "label": job.get("name") or "",
        "command": job.get("command") or "",
        "state": state.upper() if isinstance(state, str) else state,
        "createdAt": job.get("created_at"),
        "runnableAt": job.get("runnable_at"),
        "startedAt": job.get("started_at"),
        "finishedAt": job.get("finished_at"),
    }
    triggered = job.get("triggered_build")
    if isinstance(triggered, Mapping):
        node["triggered"] = {"url": triggered.get("web_url") or triggered.get("url")}
    return node


def rest_build_to_graph(raw_build: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite a REST build into the GraphQL ``build`` object shape."""
    jobs = raw_build.get("jobs") or []
    if not isinstance(jobs, list):
        raise DecodeError("REST build jobs must be a list")
    nodes = [_rest_job_to_node(job) for job in jobs if isinstance(job, Mapping)]
    return {
        "uuid": raw_build.get("id"),
        "url": raw_build.get("web_url") or raw_build.get("url") or "",
        "createdAt": raw_build.get("created_at"),
        "scheduledAt": raw_build.get("scheduled_at"),
        "startedAt": raw_build.get("started_at"),
        "finishedAt": raw_build.get("finished_at"),
        # REST lists jobs oldest first; GraphQL edges are newest first.
        "jobs": {"edges": [{"node": node} for node in reversed(nodes)]},
    }


class RestBuildFetcher(HttpFetcherBase):
    """Fetches a build from ``/organizations/{org}/pipelines/{pipeline}/builds/{number}``."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(base_url=base_url, token=token, timeout=timeout, transport=transport)

    def fetch(self, slug: BuildSlug) -> Build:
        """GET the build for ``slug`` and decode it through the GraphQL shape."""
        path = f"organizations/{slug.organization}/pipelines/{slug.pipeline}/builds/{slug.number}"
        payload = self._request_json("GET", path)
        if not isinstance(payload, Mapping):
            raise TransportError(f"Unexpected REST response for {slug}: not an object")
        return decode_build(rest_build_to_graph(payload), slug)
