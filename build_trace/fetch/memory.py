"""In-memory build fetcher for testing and offline replay.

Holds raw GraphQL ``build`` objects keyed by slug and decodes them on
every fetch, so tests exercise the same decoding path as the network
transports.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Self

from build_trace.builds import Build, BuildSlug, decode_build
from build_trace.exceptions import TransportError


class MemoryBuildFetcher:
    """Dict-based build source.

    ``fetch_count`` records how many times each slug was requested.
    """

    def __init__(self, builds: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._builds: dict[str, Mapping[str, Any]] = {}
        self.fetch_count: dict[str, int] = {}
        for slug, raw in (builds or {}).items():
            self.add(slug, raw)

    @classmethod
    def from_json_file(cls, path: Path) -> "MemoryBuildFetcher":
        """Load ``{slug: build}`` recorded GraphQL build objects from a JSON file."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise TransportError(f"Cannot read recorded builds from {path}: {e}") from e
        if not isinstance(data, dict):
            raise TransportError(f"Recorded builds in {path} must be an object keyed by slug")
        return cls(data)

    def add(self, slug: str, raw_build: Mapping[str, Any]) -> None:
        """Register a raw GraphQL ``build`` object under ``slug``."""
        self._builds[str(BuildSlug.parse(slug))] = raw_build

    def fetch(self, slug: BuildSlug) -> Build:
        """Decode the stored build for ``slug``. Unknown slugs raise TransportError."""
        key = str(slug)
        self.fetch_count[key] = self.fetch_count.get(key, 0) + 1
        raw = self._builds.get(key)
        if raw is None:
            raise TransportError(f"Build {key} not found")
        return decode_build(raw, slug)

    def close(self) -> None:
        """Nothing to release."""

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
