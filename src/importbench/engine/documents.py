"""Deterministic synthetic documents and the per-worker batch buffer."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_BATCH_SIZE = 10_000

# Printable ASCII from "!" (33) to "z" (122): 90 characters.
PAYLOAD_ALPHABET = "".join(chr(c) for c in range(33, 123))


@dataclass(frozen=True)
class Document:
    """One synthetic document.

    Attributes:
        key: Hex SHA-256 of the global sequence index.
        content_tag: Hex SHA-256 of ``"SHA"`` followed by the index.
        payload: Random printable string.
    """

    key: str
    content_tag: str
    payload: str

    def to_json(self) -> dict[str, Any]:
        """Return the document body as stored."""
        return {"_key": self.key, "sha": self.content_tag, "payload": self.payload}


def global_index(
    worker_id: int,
    batch_index: int,
    item_index: int,
    batches_per_worker: int,
    batch_size: int,
) -> int:
    """Return the run-wide sequence index of one document.

    All inputs are 1-based.
    """
    return (worker_id * batches_per_worker + batch_index - 1) * batch_size + item_index


def random_payload(size: int, rng: random.Random | None = None) -> str:
    """Return ``size`` characters drawn uniformly from PAYLOAD_ALPHABET."""
    if size <= 0:
        return ""
    choices = (rng or random).choices
    return "".join(choices(PAYLOAD_ALPHABET, k=size))


def generate_document(
    worker_id: int,
    batch_index: int,
    item_index: int,
    batches_per_worker: int,
    batch_size: int,
    payload_size: int,
    rng: random.Random | None = None,
) -> Document:
    """Generate the document at one position of a worker's batch sequence.

    ``key`` and ``content_tag`` depend only on the global sequence index;
    ``payload`` is random.
    """
    index = str(global_index(worker_id, batch_index, item_index, batches_per_worker, batch_size))
    return Document(
        key=hashlib.sha256(index.encode()).hexdigest(),
        content_tag=hashlib.sha256(f"SHA{index}".encode()).hexdigest(),
        payload=random_payload(payload_size, rng),
    )


class Batch:
    """Fixed-capacity document buffer owned by a single worker.

    The buffer is refilled for every batch and cleared in place after a
    successful submission.
    """

    def __init__(self, capacity: int = DEFAULT_BATCH_SIZE) -> None:
        if capacity < 1:
            msg = f"Batch capacity must be >= 1, got: {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._documents: list[dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._documents)

    @property
    def documents(self) -> list[dict[str, Any]]:
        """Return the buffered document bodies."""
        return self._documents

    @property
    def is_full(self) -> bool:
        """Return True once the buffer holds ``capacity`` documents."""
        return len(self._documents) >= self.capacity

    def append(self, document: Document) -> None:
        """Add a document to the buffer.

        Raises:
            OverflowError: If the buffer is already full.
        """
        if self.is_full:
            msg = f"Batch is full ({self.capacity} documents)"
            raise OverflowError(msg)
        self._documents.append(document.to_json())

    def fill(
        self,
        worker_id: int,
        batch_index: int,
        batches_per_worker: int,
        payload_size: int,
        rng: random.Random | None = None,
    ) -> None:
        """Append one full batch of generated documents."""
        for item_index in range(1, self.capacity + 1):
            self.append(
                generate_document(
                    worker_id,
                    batch_index,
                    item_index,
                    batches_per_worker,
                    self.capacity,
                    payload_size,
                    rng,
                )
            )

    def clear(self) -> None:
        """Empty the buffer in place."""
        del self._documents[:]
