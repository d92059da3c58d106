"""Latency measurement for classifier invocations."""

from moodmirror.benchmark.metrics import (
    LatencyTracker,
    BenchmarkResult,
    run_benchmark,
)

__all__ = [
    "LatencyTracker",
    "BenchmarkResult",
    "run_benchmark",
]
