"""Per-worker batch latency recording and summary statistics."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from importbench.metrics.models import AggregateStats

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def percentile_index(fraction: float, count: int) -> int:
    """Return the sample index for a percentile.

    Computes ``floor(fraction * count)`` clamped to ``[0, count - 1]``.

    Args:
        fraction: Percentile as a fraction (e.g. 0.9 for p90).
        count: Number of samples. Must be positive.

    Returns:
        Index into the ascending-sorted samples.
    """
    return min(max(math.floor(fraction * count), 0), count - 1)


def summarize_latencies(
    latencies_ms: Sequence[float],
    documents: int,
    elapsed_seconds: float,
) -> AggregateStats:
    """Compute AggregateStats over a sorted copy of ``latencies_ms``.

    The input sequence is left untouched.

    Args:
        latencies_ms: Batch latencies in milliseconds.
        documents: Documents the throughput figure is based on.
        elapsed_seconds: Wall-clock time for the throughput figure.

    Returns:
        Computed statistics. All latency fields are 0.0 when empty.
    """
    throughput = documents / elapsed_seconds if elapsed_seconds > 0 else 0.0
    n = len(latencies_ms)
    if n == 0:
        return AggregateStats(
            documents=documents,
            elapsed_seconds=elapsed_seconds,
            documents_per_second=throughput,
        )

    arr = np.sort(np.asarray(latencies_ms, dtype=np.float64))

    return AggregateStats(
        sample_count=n,
        latency_min_ms=float(arr[0]),
        latency_max_ms=float(arr[-1]),
        latency_avg_ms=float(arr.sum() / n),
        latency_p50_ms=float(arr[percentile_index(0.5, n)]),
        latency_p90_ms=float(arr[percentile_index(0.9, n)]),
        latency_p99_ms=float(arr[percentile_index(0.99, n)]),
        documents=documents,
        elapsed_seconds=elapsed_seconds,
        documents_per_second=throughput,
    )


class LatencyRecorder:
    """Accumulates batch latencies for one worker.

    Not shared between workers; a run-level view is obtained with
    ``LatencyRecorder.merge``.
    """

    def __init__(self) -> None:
        self._samples: list[float] = []

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> list[float]:
        """Return a copy of the recorded latencies in recording order."""
        return list(self._samples)

    def record(self, latency_ms: float) -> None:
        """Append one batch latency in milliseconds."""
        self._samples.append(latency_ms)

    def summarize(self, documents: int, elapsed_seconds: float) -> AggregateStats:
        """Return statistics over the samples recorded so far."""
        return summarize_latencies(self._samples, documents, elapsed_seconds)

    @classmethod
    def merge(cls, sample_sets: Iterable[Iterable[float]]) -> LatencyRecorder:
        """Build one recorder holding every sample of several workers."""
        merged = cls()
        for samples in sample_sets:
            merged._samples.extend(samples)
        return merged
