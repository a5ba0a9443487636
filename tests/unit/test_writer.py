"""Tests for BatchWriter."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from importbench._internal.errors import StoreError, WriteError
from importbench.engine.documents import Batch
from importbench.engine.writer import DEFAULT_BATCH_DEADLINE, BatchWriter
from importbench.store.protocol import OverwritePolicy

if TYPE_CHECKING:
    from tests.conftest import FakeCollection


def _filled_batch(capacity: int = 4) -> Batch:
    batch = Batch(capacity=capacity)
    batch.fill(worker_id=1, batch_index=1, batches_per_worker=1, payload_size=5)
    return batch


class TestBatchWriter:
    async def test_submits_whole_batch_in_one_request(self, fake_collection: FakeCollection):
        batch = _filled_batch(4)
        keys = [d["_key"] for d in batch]

        await BatchWriter(fake_collection).write(batch, batch_index=1)

        assert len(fake_collection.calls) == 1
        assert fake_collection.calls[0]["keys"] == keys

    async def test_uses_ignore_policy_and_generous_deadline(self, fake_collection: FakeCollection):
        await BatchWriter(fake_collection).write(_filled_batch())

        call = fake_collection.calls[0]
        assert call["overwrite_policy"] is OverwritePolicy.IGNORE
        assert call["deadline"] == DEFAULT_BATCH_DEADLINE == 3600.0

    async def test_clears_batch_after_success(self, fake_collection: FakeCollection):
        batch = _filled_batch()
        buffer = batch.documents

        await BatchWriter(fake_collection).write(batch)

        assert len(batch) == 0
        assert batch.documents is buffer

    async def test_returns_latency_in_ms(self, make_collection: type[FakeCollection]):
        collection = make_collection(delay=0.02)
        latency_ms = await BatchWriter(collection).write(_filled_batch())
        assert latency_ms >= 15.0

    async def test_store_error_becomes_write_error(self, make_collection: type[FakeCollection]):
        collection = make_collection(fail_on_call=1)
        batch = _filled_batch()

        with pytest.raises(WriteError) as exc_info:
            await BatchWriter(collection, worker_id=3).write(batch, batch_index=7)

        assert exc_info.value.worker_id == 3
        assert exc_info.value.batch_index == 7
        assert isinstance(exc_info.value.__cause__, StoreError)

    async def test_failed_batch_is_not_cleared(self, make_collection: type[FakeCollection]):
        collection = make_collection(fail_on_call=1)
        batch = _filled_batch(3)

        with pytest.raises(WriteError):
            await BatchWriter(collection).write(batch)

        assert len(batch) == 3
