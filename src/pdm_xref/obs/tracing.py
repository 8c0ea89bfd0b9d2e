"""Load tracing and summary metrics for reference resolution runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pdm_xref.resolve.monitor import ActivityMonitor
from pdm_xref.resolve.node import ReferenceNode


@dataclass(slots=True)
class LoadTrace:
    name: str
    depth: int
    location: str
    status: str
    latency_ms: float
    timestamp_utc: str
    failure: str | None = None
    children: list[str] = field(default_factory=list)


class Timer:
    """Wall-clock timer around one resolve run; `elapsed_ms` is set on exit."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


class TracingMonitor(ActivityMonitor):
    """Activity monitor that keeps one trace record per load attempt.

    Loads are strictly sequential, so one start timestamp is enough.
    Discovery callbacks attach child names to the parent's latest trace.
    """

    def __init__(self, *, limit: int = 1000) -> None:
        self._records: list[LoadTrace] = []
        self._limit = limit
        self._started: float | None = None
        self._children: dict[str, list[str]] = {}

    def started_loading(self, node: ReferenceNode) -> None:
        self._started = time.perf_counter()

    def completed_loading(self, node: ReferenceNode) -> None:
        started = self._started if self._started is not None else time.perf_counter()
        self._started = None
        failure = node.failure
        record = LoadTrace(
            name=node.name,
            depth=node.depth,
            location=str(node.primary_location.full_path),
            status=node.status_kind.value,
            latency_ms=(time.perf_counter() - started) * 1000.0,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            failure=failure.kind.value if failure is not None else None,
            children=self._children.pop(node.name, []),
        )
        self._records.append(record)
        if len(self._records) > self._limit:
            del self._records[: len(self._records) - self._limit]

    def identified(self, children: list[ReferenceNode], parent: ReferenceNode) -> None:
        self._children.setdefault(parent.name, []).extend(child.name for child in children)

    def list_recent(self, limit: int = 20) -> list[LoadTrace]:
        return self._records[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate load metrics for dashboard display."""
        records = list(self._records)
        total = len(records)
        if total == 0:
            return {
                "total_attempts": 0,
                "loaded": 0,
                "failed": 0,
                "foreign_reference": 0,
                "deferred": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "discovered_references": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_attempts": total,
            "loaded": sum(1 for record in records if record.status == "loaded"),
            "failed": sum(1 for record in records if record.status == "failed"),
            "foreign_reference": sum(
                1 for record in records if record.status == "foreign_reference"
            ),
            "deferred": sum(1 for record in records if record.status == "deferred"),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "discovered_references": sum(len(record.children) for record in records),
        }
