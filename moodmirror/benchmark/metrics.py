"""
Inference latency measurement.

A 2 s audio window must be classified in well under 2 s, and a text
segment before the next one arrives, or the gate starts to back up.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable
from collections import deque
import statistics


class LatencyTracker:
    """
    Rolling latency statistics per named operation.

    Usage:
        tracker = LatencyTracker(budget_ms=500.0)

        with tracker.measure("audio"):
            model.run(inputs)

        tracker.get_stats("audio")["p95_ms"]
    """

    def __init__(self, budget_ms: float = 500.0, history_size: int = 200) -> None:
        self._budget_ms = budget_ms
        self._history_size = history_size
        self._measurements: dict[str, deque[float]] = {}
        self._total_count: dict[str, int] = {}

    @property
    def budget_ms(self) -> float:
        return self._budget_ms

    def record(self, name: str, duration_ms: float) -> None:
        """Record an externally timed measurement."""
        if name not in self._measurements:
            self._measurements[name] = deque(maxlen=self._history_size)
            self._total_count[name] = 0
        self._measurements[name].append(duration_ms)
        self._total_count[name] += 1

    def measure(self, name: str) -> _Measure:
        """Context manager timing the enclosed block."""
        return _Measure(self, name)

    def count(self, name: str) -> int:
        return self._total_count.get(name, 0)

    def last(self, name: str) -> float | None:
        data = self._measurements.get(name)
        return data[-1] if data else None

    def is_over_budget(self, name: str) -> bool:
        last = self.last(name)
        return last is not None and last > self._budget_ms

    def get_stats(self, name: str) -> dict[str, float]:
        if not self._measurements.get(name):
            return {}

        data = sorted(self._measurements[name])
        p95 = data[min(int(len(data) * 0.95), len(data) - 1)]
        return {
            "mean_ms": statistics.mean(data),
            "median_ms": statistics.median(data),
            "min_ms": data[0],
            "max_ms": data[-1],
            "p95_ms": p95,
            "over_budget_rate": sum(1 for x in data if x > self._budget_ms) / len(data),
            "sample_count": len(data),
        }

    def get_all_stats(self) -> dict[str, dict[str, float]]:
        return {name: self.get_stats(name) for name in self._measurements}

    def reset(self) -> None:
        self._measurements.clear()
        self._total_count.clear()


class _Measure:
    def __init__(self, tracker: LatencyTracker, name: str) -> None:
        self._tracker = tracker
        self._name = name
        self._start_ns = 0
        self.duration_ms = 0.0

    def __enter__(self) -> _Measure:
        self._start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args) -> None:
        self.duration_ms = (time.perf_counter_ns() - self._start_ns) / 1_000_000
        self._tracker.record(self._name, self.duration_ms)


@dataclass
class BenchmarkResult:
    """Result of timing one classifier over a batch of inputs."""
    name: str
    duration_seconds: float
    items_processed: int
    latency_stats: dict[str, float]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def realtime_factor(self) -> float:
        """Audio seconds classified per wall-clock second. >1 keeps up with capture."""
        window_ms = self.metadata.get("window_ms")
        if not window_ms or self.duration_seconds <= 0:
            return 0.0
        return (self.items_processed * window_ms / 1000) / self.duration_seconds

    def summary(self) -> str:
        lines = [
            f"Benchmark: {self.name}",
            f"  Items: {self.items_processed} in {self.duration_seconds:.2f}s",
        ]
        if self.latency_stats:
            lines.extend([
                f"  Mean: {self.latency_stats.get('mean_ms', 0):.2f}ms",
                f"  P95: {self.latency_stats.get('p95_ms', 0):.2f}ms",
                f"  Max: {self.latency_stats.get('max_ms', 0):.2f}ms",
            ])
        if "window_ms" in self.metadata:
            lines.append(f"  Realtime factor: {self.realtime_factor:.2f}x")
        return "\n".join(lines)


def run_benchmark(
    name: str,
    classify: Callable[[Any], Any],
    inputs: Iterable[Any],
    budget_ms: float = 500.0,
    window_ms: int | None = None,
) -> BenchmarkResult:
    """Time `classify` over every input."""
    tracker = LatencyTracker(budget_ms=budget_ms)
    processed = 0

    start = time.perf_counter()
    for item in inputs:
        with tracker.measure(name):
            classify(item)
        processed += 1
    duration = time.perf_counter() - start

    metadata: dict[str, Any] = {"budget_ms": budget_ms}
    if window_ms is not None:
        metadata["window_ms"] = window_ms

    return BenchmarkResult(
        name=name,
        duration_seconds=duration,
        items_processed=processed,
        latency_stats=tracker.get_stats(name),
        metadata=metadata,
    )
