"""Timed submission of one document batch."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from importbench._internal.errors import StoreError, WriteError
from importbench._internal.logging import get_logger
from importbench.store.protocol import OverwritePolicy

if TYPE_CHECKING:
    from importbench.engine.documents import Batch
    from importbench.store.protocol import CollectionHandle

logger = get_logger("engine.writer")

DEFAULT_BATCH_DEADLINE = 3600.0


class BatchWriter:
    """Submits full batches to a collection and measures their latency.

    Attributes:
        overwrite_policy: Overwrite mode sent with every batch.
        deadline: Per-batch request deadline in seconds.
    """

    def __init__(
        self,
        collection: CollectionHandle,
        *,
        overwrite_policy: OverwritePolicy = OverwritePolicy.IGNORE,
        deadline: float = DEFAULT_BATCH_DEADLINE,
        worker_id: int = 0,
    ) -> None:
        """Initialize the writer.

        Args:
            collection: Target collection, shared with other workers.
            overwrite_policy: Behavior for keys that already exist.
            deadline: Per-batch request deadline in seconds.
            worker_id: Worker identifier for errors and log lines.
        """
        self._collection = collection
        self.overwrite_policy = overwrite_policy
        self.deadline = deadline
        self._worker_id = worker_id

    async def write(self, batch: Batch, batch_index: int = 0) -> float:
        """Submit ``batch`` as one request.

        The batch is cleared after a successful submission. On failure it
        is left as is and must not be resubmitted.

        Args:
            batch: The filled batch buffer.
            batch_index: 1-based index of the batch, for error reporting.

        Returns:
            Submission latency in milliseconds.

        Raises:
            WriteError: If the store or transport rejects the request.
        """
        start = time.perf_counter()
        try:
            result = await self._collection.submit_batch(
                batch.documents,
                self.overwrite_policy,
                self.deadline,
            )
        except StoreError as exc:
            msg = f"Could not write batch {batch_index} of worker {self._worker_id}: {exc}"
            raise WriteError(msg, worker_id=self._worker_id, batch_index=batch_index) from exc
        latency_ms = (time.perf_counter() - start) * 1000

        if result.errors:
            logger.debug(
                "Worker %d batch %d: %d of %d documents rejected",
                self._worker_id,
                batch_index,
                result.errors,
                result.submitted,
            )

        batch.clear()
        return latency_ms
