"""importbench — concurrent batch-import benchmark for ArangoDB."""

from __future__ import annotations

from importbench._internal.errors import (
    ConfigError,
    ImportBenchError,
    RunFailedError,
    StoreError,
    WriteError,
)
from importbench.engine.coordinator import Coordinator, run_batch_import
from importbench.engine.documents import Batch, Document, generate_document
from importbench.metrics.models import AggregateStats, RunResult, WorkerOutcome
from importbench.store.client import ArangoClient
from importbench.store.protocol import OverwritePolicy

__version__ = "0.1.0"

__all__ = [
    "AggregateStats",
    "ArangoClient",
    "Batch",
    "ConfigError",
    "Coordinator",
    "Document",
    "ImportBenchError",
    "OverwritePolicy",
    "RunFailedError",
    "RunResult",
    "StoreError",
    "WorkerOutcome",
    "WriteError",
    "generate_document",
    "run_batch_import",
]
