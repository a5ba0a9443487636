"""Custom exception hierarchy for importbench."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from importbench.metrics.models import RunResult


class ImportBenchError(Exception):
    """Base exception for all importbench errors.

    All custom exceptions in importbench inherit from this class, making
    it easy to catch any importbench-specific error with a single except
    clause.
    """


class ConfigError(ImportBenchError):
    """Raised when configuration is invalid or missing.

    Detected before any worker starts; aborts the whole run.

    Examples:
        - An environment variable has an invalid value.
        - A benchmark parameter is out of range (e.g. ``batch_size < 1``).
        - No collection handle was supplied to the coordinator.
    """


class StoreError(ImportBenchError):
    """Raised when the document store rejects a request or cannot be reached.

    Attributes:
        status: HTTP status code of the reply, 0 for transport failures.
        error_num: Store-specific error number, 0 when unknown.
    """

    def __init__(self, message: str, *, status: int = 0, error_num: int = 0) -> None:
        super().__init__(message)
        self.status = status
        self.error_num = error_num


class NotFoundError(StoreError):
    """Raised when a database or collection does not exist."""


class DatabaseNotFoundError(NotFoundError):
    """Raised when opening a database that does not exist."""


class CollectionNotFoundError(NotFoundError):
    """Raised when opening a collection that does not exist."""


class ConflictError(StoreError):
    """Raised when creating a resource that already exists."""


class WriteError(ImportBenchError):
    """Raised when a batch submission fails.

    Fatal to the owning worker only. The original store or transport
    error is chained as ``__cause__``.

    Attributes:
        worker_id: Worker that attempted the batch (0 if unknown).
        batch_index: 1-based index of the failed batch (0 if unknown).
    """

    def __init__(self, message: str, *, worker_id: int = 0, batch_index: int = 0) -> None:
        super().__init__(message)
        self.worker_id = worker_id
        self.batch_index = batch_index


class RunFailedError(ImportBenchError):
    """Raised by the coordinator after all workers joined if any of them failed.

    Attributes:
        result: The finalized run result, including the attempted total.
        failures: ``(worker_id, error)`` pairs for every failed worker.
    """

    def __init__(
        self,
        result: RunResult,
        failures: list[tuple[int, BaseException]],
    ) -> None:
        ids = ", ".join(str(worker_id) for worker_id, _ in failures)
        super().__init__(f"Batch import failed in {len(failures)} worker(s): {ids}")
        self.result = result
        self.failures = failures
