"""A single batch-import worker: generate, write, record, repeat."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from importbench._internal.errors import WriteError
from importbench._internal.logging import get_logger
from importbench.engine.documents import Batch
from importbench.engine.writer import DEFAULT_BATCH_DEADLINE, BatchWriter
from importbench.metrics.models import WorkerOutcome, WorkerState
from importbench.metrics.recorder import LatencyRecorder

if TYPE_CHECKING:
    import random
    from concurrent.futures import Executor

    from importbench.store.protocol import CollectionHandle

logger = get_logger("engine.worker")

PROGRESS_INTERVAL = 100


class WorkerTask:
    """Writes ``batch_count`` batches of ``batch_size`` documents, one at a time.

    Batch ``i + 1`` is only generated after batch ``i`` has been submitted
    and its latency recorded. Batches are generated on an executor thread,
    so the event loop only ever waits on store submissions. The first write
    error stops the worker; no other worker is affected.

    State machine: IDLE -> RUNNING -> COMPLETED
                                   -> FAILED (on write error)

    Attributes:
        worker_id: 1-based worker identifier.
        batch_count: Number of batches to write.
        batch_size: Documents per batch.
        payload_size: Payload length in bytes per document.
    """

    def __init__(
        self,
        worker_id: int,
        collection: CollectionHandle,
        *,
        batch_count: int,
        batch_size: int,
        payload_size: int,
        deadline: float = DEFAULT_BATCH_DEADLINE,
        rng: random.Random | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            worker_id: 1-based worker identifier.
            collection: Target collection, shared with other workers.
            batch_count: Number of batches to write.
            batch_size: Documents per batch.
            payload_size: Payload length in bytes per document.
            deadline: Per-batch request deadline in seconds.
            rng: Optional random generator for payloads.
            executor: Thread pool that generates batches off the event
                loop. None uses the loop's default executor.
        """
        self.worker_id = worker_id
        self.batch_count = batch_count
        self.batch_size = batch_size
        self.payload_size = payload_size
        self._rng = rng
        self._executor = executor

        self._state = WorkerState.IDLE
        self._batch = Batch(capacity=batch_size)
        self._writer = BatchWriter(collection, deadline=deadline, worker_id=worker_id)
        self._recorder = LatencyRecorder()
        self._batches_completed = 0

    @property
    def state(self) -> WorkerState:
        """Return the current worker state."""
        return self._state

    @property
    def batches_completed(self) -> int:
        """Return the number of successfully submitted batches."""
        return self._batches_completed

    async def run(self) -> WorkerOutcome:
        """Run the batch loop to completion or to the first write error.

        Returns:
            The worker's outcome; never raises on write errors.

        Raises:
            RuntimeError: If the worker has already been run.
        """
        if self._state is not WorkerState.IDLE:
            msg = f"Worker {self.worker_id} already ran (state={self._state.name})"
            raise RuntimeError(msg)

        self._state = WorkerState.RUNNING
        logger.info("Starting worker %d", self.worker_id, extra={"worker_id": self.worker_id})
        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        error: WriteError | None = None

        for batch_index in range(1, self.batch_count + 1):
            # Generation must not run on the event loop the writers share
            await loop.run_in_executor(
                self._executor,
                self._batch.fill,
                self.worker_id,
                batch_index,
                self.batch_count,
                self.payload_size,
                self._rng,
            )
            try:
                latency_ms = await self._writer.write(self._batch, batch_index)
            except WriteError as exc:
                error = exc
                break

            self._recorder.record(latency_ms)
            self._batches_completed = batch_index

            if batch_index % PROGRESS_INTERVAL == 0:
                logger.info(
                    "Have imported %d batches for id %d.",
                    batch_index,
                    self.worker_id,
                    extra={"worker_id": self.worker_id},
                )

        elapsed = time.perf_counter() - start
        documents_written = self._batches_completed * self.batch_size

        if error is not None:
            self._state = WorkerState.FAILED
            logger.error(
                "Worker %d failed after %d of %d batches: %s",
                self.worker_id,
                self._batches_completed,
                self.batch_count,
                error,
                extra={"worker_id": self.worker_id},
            )
            return WorkerOutcome(
                worker_id=self.worker_id,
                state=self._state,
                batches_completed=self._batches_completed,
                documents_written=documents_written,
                elapsed_seconds=elapsed,
                latencies_ms=self._recorder.samples,
                error=error,
            )

        self._state = WorkerState.COMPLETED
        stats = self._recorder.summarize(
            documents=self.batch_count * self.batch_size,
            elapsed_seconds=elapsed,
        )
        logger.info(
            "Times for %d batches: %.3fms (median), %.3fms (90%%ile), %.3fms (99%%ile), "
            "%.3fms (average), docs per second in worker %d: %.1f",
            self.batch_count,
            stats.latency_p50_ms,
            stats.latency_p90_ms,
            stats.latency_p99_ms,
            stats.latency_avg_ms,
            self.worker_id,
            stats.documents_per_second,
            extra={"worker_id": self.worker_id},
        )
        return WorkerOutcome(
            worker_id=self.worker_id,
            state=self._state,
            batches_completed=self._batches_completed,
            documents_written=documents_written,
            elapsed_seconds=elapsed,
            latencies_ms=self._recorder.samples,
            stats=stats,
        )
