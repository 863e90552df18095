"""GraphQL transport for build records."""

from collections.abc import Mapping
from typing import Any

import httpx

from build_trace.builds import Build, BuildSlug, decode_build
from build_trace.exceptions import TransportError
from build_trace.fetch._http import HttpFetcherBase

JOBS_FOR_BUILD_QUERY = """
query JobsForBuild($slug: ID!, $jobLimit: Int!) {
  build(slug: $slug) {
    uuid
    createdAt
    scheduledAt
    startedAt
    finishedAt
    url
    jobs(first: $jobLimit) {
      edges {
        node {
          __typename
          ... on JobTypeCommand {
            uuid
            command
            label
            createdAt
            scheduledAt
            runnableAt
            startedAt
            finishedAt
            state
          }
          ... on JobTypeWait {
            uuid
            state
          }
          ... on JobTypeBlock {
            uuid
            unblockedAt
          }
          ... on JobTypeTrigger {
            uuid
            label
            state
            createdAt
            startedAt
            finishedAt
            triggered {
              url
            }
          }
        }
      }
    }
  }
}
"""


class GraphQLBuildFetcher(HttpFetcherBase):
    """Fetches a build and its job edges with a single GraphQL query."""

    def __init__(
        self,
        *,
        url: str,
        token: str,
        job_limit: int = 500,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(base_url="", token=token, timeout=timeout, transport=transport)
        self._url = url
        self._job_limit = job_limit

    def fetch(self, slug: BuildSlug) -> Build:
        """Run ``JobsForBuild`` for ``slug`` and decode the result."""
        payload = self._request_json(
            "POST",
            self._url,
            json={"query": JOBS_FOR_BUILD_QUERY, "variables": {"slug": str(slug), "jobLimit": self._job_limit}},
        )
        raw_build = self._extract_build(payload, slug)
        return decode_build(raw_build, slug)

    @staticmethod
    def _extract_build(payload: Any, slug: BuildSlug) -> Mapping[str, Any]:
        """Return ``data.build`` or raise TransportError for GraphQL-level failures."""
        if not isinstance(payload, Mapping):
            raise TransportError(f"Unexpected GraphQL response for {slug}: not an object")
        if errors := payload.get("errors"):
            messages = "; ".join(str(err.get("message", err)) if isinstance(err, Mapping) else str(err) for err in errors)
            raise TransportError(f"GraphQL query for {slug} failed: {messages}")
        data = payload.get("data")
        build = data.get("build") if isinstance(data, Mapping) else None
        if not isinstance(build, Mapping):
            raise TransportError(f"Build {slug} not found")
        return build
