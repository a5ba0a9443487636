"""Run a small batch-import benchmark against a local ArangoDB.

Run with:
    python examples/batchimport_local.py

Equivalent CLI call:
    importbench batchimport --create --parallelism 4 --number 50 --batch-size 1000
"""

from __future__ import annotations

import asyncio

from importbench import ArangoClient, RunFailedError, run_batch_import
from importbench._internal.logging import setup_logging
from importbench.store.client import create_or_get_collection, create_or_get_database


async def main() -> None:
    setup_logging()
    async with ArangoClient(["http://localhost:8529"], username="root", password="") as client:
        database = await create_or_get_database(client, "_system")
        collection = await create_or_get_collection(database, "batchimport")
        try:
            result = await run_batch_import(
                collection,
                parallelism=4,
                batches_per_worker=50,
                start_delay=0.005,
                payload_size=10,
                batch_size=1000,
            )
        except RunFailedError as exc:
            result = exc.result
            for worker_id, error in exc.failures:
                print(f"worker {worker_id} failed: {error}")

        print(
            f"{result.total_documents} documents in {result.wall_clock_elapsed:.1f}s "
            f"({result.documents_per_second:.0f} docs/s)"
        )


if __name__ == "__main__":
    asyncio.run(main())
