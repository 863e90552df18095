"""Shared httpx plumbing for the GraphQL and REST transports."""

from typing import Any, Self

import httpx

from build_trace.exceptions import TransportError
from build_trace.logging import get_pipeline_logger

logger = get_pipeline_logger(__name__)


class HttpFetcherBase:
    """Owns a synchronous ``httpx.Client`` authenticated with a bearer token.

    ``transport`` is forwarded to httpx; tests pass ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            TransportError: Connection failure, timeout, non-2xx status or a
                body that is not JSON.
        """
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            raise TransportError(f"{method} {e.request.url} failed: HTTP {e.response.status_code} {body}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
