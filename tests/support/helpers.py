"""Builders for raw GraphQL build and job payloads used across tests."""

from datetime import UTC, datetime, timedelta
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


def ts(seconds: float) -> str:
    """RFC 3339 string ``seconds`` after T0."""
    return (T0 + timedelta(seconds=seconds)).isoformat().replace("+00:00", "Z")


def at(seconds: float) -> datetime:
    """Aware datetime ``seconds`` after T0."""
    return T0 + timedelta(seconds=seconds)


def command_node(
    uuid: str,
    *,
    started: float | None = 10,
    finished: float | None = 20,
    state: str = "PASSED",
    label: str = "",
    command: str = "make test",
    runnable: float | None = None,
) -> dict[str, Any]:
    """Raw ``JobTypeCommand`` node."""
    return {
        "__typename": "JobTypeCommand",
        "uuid": uuid,
        "label": label or f":hammer: {uuid}",
        "command": command,
        "state": state,
        "createdAt": ts(0),
        "scheduledAt": ts(0),
        "runnableAt": ts(runnable) if runnable is not None else None,
        "startedAt": ts(started) if started is not None else None,
        "finishedAt": ts(finished) if finished is not None else None,
    }


def trigger_node(
    uuid: str,
    triggered: dict[str, Any] | None,
    *,
    started: float | None = 10,
    finished: float | None = 20,
    state: str = "PASSED",
    label: str = "",
) -> dict[str, Any]:
    """Raw ``JobTypeTrigger`` node. ``triggered`` is the reference object, e.g. ``{"url": ...}`` or ``{"slug": ...}``."""
    return {
        "__typename": "JobTypeTrigger",
        "uuid": uuid,
        "label": label or f":rocket: {uuid}",
        "state": state,
        "createdAt": ts(0),
        "startedAt": ts(started) if started is not None else None,
        "finishedAt": ts(finished) if finished is not None else None,
        "triggered": triggered,
    }


def wait_node(uuid: str = "wait-1", state: str = "PASSED") -> dict[str, Any]:
    """Raw ``JobTypeWait`` node."""
    return {"__typename": "JobTypeWait", "uuid": uuid, "state": state}


def block_node(uuid: str = "block-1") -> dict[str, Any]:
    """Raw ``JobTypeBlock`` node, which is never traced."""
    return {"__typename": "JobTypeBlock", "uuid": uuid, "unblockedAt": ts(5)}


def build_payload(
    uuid: str,
    nodes: list[dict[str, Any]],
    *,
    scheduled: float | None = 0,
    created: float | None = 0,
    started: float | None = 1,
    finished: float | None = 100,
    url: str | None = None,
) -> dict[str, Any]:
    """Raw GraphQL ``build`` object. ``nodes`` are given oldest first and stored newest first, as the API does."""
    return {
        "uuid": uuid,
        "url": url or f"https://buildkite.com/acme/app/builds/{uuid}",
        "createdAt": ts(created) if created is not None else None,
        "scheduledAt": ts(scheduled) if scheduled is not None else None,
        "startedAt": ts(started) if started is not None else None,
        "finishedAt": ts(finished) if finished is not None else None,
        "jobs": {"edges": [{"node": node} for node in reversed(nodes)]},
    }


def nanos(seconds: float) -> int:
    """Unix nanoseconds of ``seconds`` after T0."""
    return int(T0.timestamp()) * 1_000_000_000 + round(seconds * 1_000_000_000)


def spans_by_name(exporter: InMemorySpanExporter) -> dict[str, ReadableSpan]:
    """Finished spans keyed by name. Names must be unique within the test."""
    spans = exporter.get_finished_spans()
    by_name = {span.name: span for span in spans}
    assert len(by_name) == len(spans), f"duplicate span names: {[s.name for s in spans]}"
    return by_name
