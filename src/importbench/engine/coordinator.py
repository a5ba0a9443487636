"""Launches batch-import workers and reduces their outcomes into a RunResult."""

from __future__ import annotations

import asyncio
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from importbench._internal.errors import ConfigError, RunFailedError
from importbench._internal.logging import get_logger
from importbench.engine.documents import DEFAULT_BATCH_SIZE
from importbench.engine.worker import WorkerTask
from importbench.engine.writer import DEFAULT_BATCH_DEADLINE
from importbench.metrics.models import RunResult, WorkerOutcome, WorkerState
from importbench.metrics.recorder import LatencyRecorder

if TYPE_CHECKING:
    from importbench.store.protocol import CollectionHandle

logger = get_logger("engine.coordinator")


def install_uvloop() -> None:
    """Install uvloop as the default event loop policy if available.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


class Coordinator:
    """Runs ``parallelism`` workers against one collection.

    Workers are dispatched one after another, each after a ``start_delay``
    pause, so the last worker starts ``parallelism * start_delay`` seconds
    into the run. Dispatched workers run concurrently and are never
    cancelled because a sibling failed. Nothing run-level is reported
    until every worker has finished.

    Workers submit on the event loop and generate their batches on a
    thread pool with one thread per worker.

    Attributes:
        parallelism: Number of workers.
        batches_per_worker: Batches each worker writes.
        start_delay: Seconds to wait before dispatching each worker.
        payload_size: Payload length in bytes per document.
        batch_size: Documents per batch.
    """

    def __init__(
        self,
        collection: CollectionHandle | None,
        *,
        parallelism: int = 1,
        batches_per_worker: int = 1,
        start_delay: float = 0.0,
        payload_size: int = 10,
        batch_size: int = DEFAULT_BATCH_SIZE,
        deadline: float = DEFAULT_BATCH_DEADLINE,
    ) -> None:
        """Initialize and validate the run configuration.

        Args:
            collection: Opened target collection.
            parallelism: Number of workers (>= 1).
            batches_per_worker: Batches per worker (>= 1).
            start_delay: Seconds between worker dispatches (>= 0).
            payload_size: Payload bytes per document (>= 0).
            batch_size: Documents per batch (>= 1).
            deadline: Per-batch request deadline in seconds.

        Raises:
            ConfigError: If the collection is missing or a value is out of range.
        """
        if collection is None:
            msg = "A collection handle is required"
            raise ConfigError(msg)
        for name, value, minimum in (
            ("parallelism", parallelism, 1),
            ("batches_per_worker", batches_per_worker, 1),
            ("payload_size", payload_size, 0),
            ("batch_size", batch_size, 1),
        ):
            if value < minimum:
                msg = f"{name} must be >= {minimum}, got: {value}"
                raise ConfigError(msg)
        if start_delay < 0:
            msg = f"start_delay must be >= 0, got: {start_delay}"
            raise ConfigError(msg)
        if deadline <= 0:
            msg = f"deadline must be positive, got: {deadline}"
            raise ConfigError(msg)

        self._collection = collection
        self.parallelism = parallelism
        self.batches_per_worker = batches_per_worker
        self.start_delay = start_delay
        self.payload_size = payload_size
        self.batch_size = batch_size
        self._deadline = deadline

    @property
    def total_documents(self) -> int:
        """Return the number of documents the run attempts to write."""
        return self.parallelism * self.batches_per_worker * self.batch_size

    async def run(self) -> RunResult:
        """Dispatch all workers, wait for all of them, and reduce the outcomes.

        Returns:
            RunResult for a run in which every worker completed.

        Raises:
            RunFailedError: After all workers joined, if any of them failed.
                The exception carries the RunResult.
        """
        logger.info(
            "Starting batch import: collection=%s, parallelism=%d, batches=%d, "
            "batch_size=%d, payload_size=%d, start_delay=%.3fs",
            self._collection.name,
            self.parallelism,
            self.batches_per_worker,
            self.batch_size,
            self.payload_size,
            self.start_delay,
        )

        start = time.perf_counter()
        workers: list[WorkerTask] = []
        tasks: list[asyncio.Task[WorkerOutcome]] = []

        with ThreadPoolExecutor(
            max_workers=self.parallelism, thread_name_prefix="importbench-generator"
        ) as generators:
            for worker_id in range(1, self.parallelism + 1):
                await asyncio.sleep(self.start_delay)
                worker = WorkerTask(
                    worker_id,
                    self._collection,
                    batch_count=self.batches_per_worker,
                    batch_size=self.batch_size,
                    payload_size=self.payload_size,
                    deadline=self._deadline,
                    executor=generators,
                )
                workers.append(worker)
                tasks.append(
                    asyncio.create_task(
                        _run_worker(worker), name=f"importbench-worker-{worker_id}"
                    )
                )

            gathered = await asyncio.gather(*tasks, return_exceptions=True)
        elapsed = time.perf_counter() - start

        outcomes: list[WorkerOutcome] = []
        for worker, item in zip(workers, gathered, strict=True):
            if isinstance(item, WorkerOutcome):
                outcomes.append(item)
                continue
            if not isinstance(item, Exception):
                raise item
            logger.error("Worker %d crashed", worker.worker_id, exc_info=item)
            outcomes.append(
                WorkerOutcome(
                    worker_id=worker.worker_id,
                    state=WorkerState.FAILED,
                    batches_completed=worker.batches_completed,
                    documents_written=worker.batches_completed * self.batch_size,
                    elapsed_seconds=elapsed,
                    error=item,
                )
            )

        merged = LatencyRecorder.merge(o.latencies_ms for o in outcomes)
        failures = [(o.worker_id, o.error) for o in outcomes if o.failed and o.error is not None]
        result = RunResult(
            total_documents=self.total_documents,
            wall_clock_elapsed=elapsed,
            any_worker_failed=any(o.failed for o in outcomes),
            workers=outcomes,
            latency=merged.summarize(documents=self.total_documents, elapsed_seconds=elapsed),
        )

        logger.info(
            "Total number of documents written: %d, total time: %.3fs, "
            "total documents per second: %.1f",
            result.total_documents,
            result.wall_clock_elapsed,
            result.documents_per_second,
        )

        if result.any_worker_failed:
            logger.error("Batch import failed in %d worker(s)", len(failures))
            raise RunFailedError(result, failures)

        return result


async def _run_worker(worker: WorkerTask) -> WorkerOutcome:
    outcome = await worker.run()
    logger.info("Worker %d done", worker.worker_id, extra={"worker_id": worker.worker_id})
    return outcome


async def run_batch_import(
    collection: CollectionHandle | None,
    *,
    parallelism: int,
    batches_per_worker: int,
    start_delay: float,
    payload_size: int,
    batch_size: int,
    deadline: float = DEFAULT_BATCH_DEADLINE,
) -> RunResult:
    """Run one batch-import benchmark against an opened collection.

    Args:
        collection: Opened target collection.
        parallelism: Number of concurrent workers.
        batches_per_worker: Batches each worker writes.
        start_delay: Seconds between worker dispatches.
        payload_size: Payload bytes per document.
        batch_size: Documents per batch.
        deadline: Per-batch request deadline in seconds.

    Returns:
        RunResult of a fully successful run.

    Raises:
        ConfigError: Before any worker starts, on invalid input.
        RunFailedError: After all workers finished, if any failed.
    """
    coordinator = Coordinator(
        collection,
        parallelism=parallelism,
        batches_per_worker=batches_per_worker,
        start_delay=start_delay,
        payload_size=payload_size,
        batch_size=batch_size,
        deadline=deadline,
    )
    return await coordinator.run()
