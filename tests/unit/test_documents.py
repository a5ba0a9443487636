"""Tests for document generation and the batch buffer."""

from __future__ import annotations

import hashlib
import random

import pytest

from importbench.engine.documents import (
    PAYLOAD_ALPHABET,
    Batch,
    Document,
    generate_document,
    global_index,
    random_payload,
)


class TestGlobalIndex:
    def test_formula(self):
        # (2 * 10 + 3 - 1) * 5 + 4
        assert global_index(2, 3, 4, 10, 5) == 114

    def test_consecutive_items_are_consecutive(self):
        first = global_index(1, 1, 1, 3, 5)
        assert [global_index(1, 1, j, 3, 5) for j in range(1, 6)] == list(
            range(first, first + 5)
        )

    def test_distinct_across_workers_batches_and_items(self):
        batches, size = 4, 7
        indices = {
            global_index(w, b, i, batches, size)
            for w in range(1, 4)
            for b in range(1, batches + 1)
            for i in range(1, size + 1)
        }
        assert len(indices) == 3 * batches * size


class TestGenerateDocument:
    def test_key_and_content_tag_are_sha256_of_index(self):
        doc = generate_document(1, 1, 1, 1, 1, payload_size=0)
        # (1 * 1 + 1 - 1) * 1 + 1 == 2
        assert doc.key == hashlib.sha256(b"2").hexdigest()
        assert doc.content_tag == hashlib.sha256(b"SHA2").hexdigest()

    def test_identity_is_deterministic(self):
        a = generate_document(3, 7, 11, 100, 50, payload_size=20)
        b = generate_document(3, 7, 11, 100, 50, payload_size=20)
        assert a.key == b.key
        assert a.content_tag == b.content_tag

    def test_keys_are_unique_within_a_run(self):
        keys = {
            generate_document(w, b, i, 3, 4, payload_size=0).key
            for w in range(1, 3)
            for b in range(1, 4)
            for i in range(1, 5)
        }
        assert len(keys) == 2 * 3 * 4

    @pytest.mark.parametrize("size", [0, 1, 10, 1000])
    def test_payload_length(self, size: int):
        doc = generate_document(1, 1, 1, 1, 1, payload_size=size)
        assert len(doc.payload) == size

    def test_to_json_uses_store_field_names(self):
        doc = Document(key="k", content_tag="t", payload="p")
        assert doc.to_json() == {"_key": "k", "sha": "t", "payload": "p"}


class TestRandomPayload:
    def test_alphabet_is_printable_33_to_122(self):
        assert len(PAYLOAD_ALPHABET) == 90
        assert PAYLOAD_ALPHABET[0] == "!"
        assert PAYLOAD_ALPHABET[-1] == "z"

    def test_characters_come_from_alphabet(self):
        payload = random_payload(5000)
        assert set(payload) <= set(PAYLOAD_ALPHABET)

    def test_seeded_rng_is_reproducible(self):
        assert random_payload(64, random.Random(7)) == random_payload(64, random.Random(7))

    def test_negative_size_gives_empty_string(self):
        assert random_payload(-1) == ""


class TestBatch:
    def test_fill_produces_full_batch(self):
        batch = Batch(capacity=5)
        batch.fill(worker_id=1, batch_index=1, batches_per_worker=2, payload_size=3)
        assert len(batch) == 5
        assert batch.is_full
        assert all(len(d["payload"]) == 3 for d in batch)

    def test_fill_matches_generate_document(self):
        batch = Batch(capacity=3)
        batch.fill(worker_id=2, batch_index=4, batches_per_worker=5, payload_size=0)
        expected = [generate_document(2, 4, i, 5, 3, 0).key for i in range(1, 4)]
        assert [d["_key"] for d in batch] == expected

    def test_clear_keeps_the_same_buffer(self):
        batch = Batch(capacity=2)
        buffer = batch.documents
        batch.fill(worker_id=1, batch_index=1, batches_per_worker=1, payload_size=0)
        batch.clear()
        assert len(batch) == 0
        assert batch.documents is buffer
        assert batch.capacity == 2

    def test_append_beyond_capacity_raises(self):
        batch = Batch(capacity=1)
        batch.append(Document(key="a", content_tag="b", payload=""))
        with pytest.raises(OverflowError):
            batch.append(Document(key="c", content_tag="d", payload=""))

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError, match="must be >= 1"):
            Batch(capacity=0)
