"""Result dataclasses for importbench runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class WorkerState(Enum):
    """State machine for a worker task."""

    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class AggregateStats:
    """Latency and throughput statistics over a set of batch durations.

    Percentiles are taken from an ascending-sorted copy of the samples at
    index ``floor(p * n)`` clamped to ``[0, n - 1]``, so every reported
    percentile is an actual sample.

    Attributes:
        sample_count: Number of latency samples.
        latency_min_ms: Fastest batch in milliseconds.
        latency_max_ms: Slowest batch in milliseconds.
        latency_avg_ms: Mean batch latency in milliseconds.
        latency_p50_ms: Median batch latency in milliseconds.
        latency_p90_ms: 90th percentile batch latency in milliseconds.
        latency_p99_ms: 99th percentile batch latency in milliseconds.
        documents: Documents the throughput figure is based on.
        elapsed_seconds: Wall-clock time the throughput figure is based on.
        documents_per_second: ``documents / elapsed_seconds``.
    """

    sample_count: int = 0
    latency_min_ms: float = 0.0
    latency_max_ms: float = 0.0
    latency_avg_ms: float = 0.0
    latency_p50_ms: float = 0.0
    latency_p90_ms: float = 0.0
    latency_p99_ms: float = 0.0
    documents: int = 0
    elapsed_seconds: float = 0.0
    documents_per_second: float = 0.0


@dataclass
class WorkerOutcome:
    """What one worker reports back to the coordinator when it finishes.

    Attributes:
        worker_id: 1-based worker identifier.
        state: COMPLETED or FAILED.
        batches_completed: Batches submitted successfully.
        documents_written: Documents in successfully submitted batches.
        elapsed_seconds: The worker's own wall-clock duration.
        latencies_ms: Batch latencies in submission order.
        stats: Statistics for a completed worker, None if it failed.
        error: The error that stopped a failed worker.
    """

    worker_id: int
    state: WorkerState
    batches_completed: int
    documents_written: int
    elapsed_seconds: float
    latencies_ms: list[float] = field(default_factory=list)
    stats: AggregateStats | None = None
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        """Return True if the worker stopped on an error."""
        return self.state is WorkerState.FAILED


@dataclass
class RunResult:
    """Result of a whole benchmark run, built once after all workers joined.

    Attributes:
        total_documents: Documents attempted by the configuration
            (``parallelism * batches_per_worker * batch_size``), whether or
            not they were written.
        wall_clock_elapsed: Seconds from run start to the join barrier.
        any_worker_failed: True if at least one worker stopped on an error.
        workers: Per-worker outcomes ordered by worker id.
        latency: Statistics over all workers' batch latencies.
    """

    total_documents: int
    wall_clock_elapsed: float
    any_worker_failed: bool
    workers: list[WorkerOutcome] = field(default_factory=list)
    latency: AggregateStats | None = None

    @property
    def documents_per_second(self) -> float:
        """Return aggregate throughput over the run's wall-clock time."""
        return self.total_documents / max(self.wall_clock_elapsed, 1e-9)

    @property
    def documents_written(self) -> int:
        """Return documents in successfully submitted batches, all workers."""
        return sum(w.documents_written for w in self.workers)
