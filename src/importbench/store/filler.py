"""Top up a collection to an expected document count.

Used to prepare collections of a given size before benchmarking. Documents
have a single random field and no explicit key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from importbench._internal.errors import ConfigError
from importbench._internal.logging import get_logger
from importbench.engine.documents import random_payload
from importbench.engine.writer import DEFAULT_BATCH_DEADLINE
from importbench.store.protocol import OverwritePolicy

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from importbench.store.protocol import CollectionHandle

logger = get_logger("store.filler")

# Payload bytes sent in one request before the chunk is cut.
MAX_CHUNK_BYTES = 100_000_000


def one_field_document(size: int, rng: random.Random | None = None) -> dict[str, Any]:
    """Return a document whose only field ``a`` holds ``size`` random characters."""
    return {"a": random_payload(size, rng)}


class CollectionFiller:
    """Writes documents until a collection holds ``expected_count`` of them.

    The whole collection is meant to weigh about ``expected_size`` bytes, so
    every document gets ``expected_size // expected_count`` payload bytes.
    Documents already present count towards the target. Each request
    carries as many documents as fit in ``max_chunk_bytes``; the document
    that crosses the limit is still included.

    Attributes:
        expected_size: Target payload size of the collection in bytes.
        expected_count: Target number of documents.
    """

    def __init__(
        self,
        collection: CollectionHandle | None,
        *,
        expected_size: int,
        expected_count: int,
        document_factory: Callable[[int], dict[str, Any]] | None = None,
        max_chunk_bytes: int = MAX_CHUNK_BYTES,
        deadline: float = DEFAULT_BATCH_DEADLINE,
    ) -> None:
        self._collection = collection
        self.expected_size = expected_size
        self.expected_count = expected_count
        self._make_document = document_factory or one_field_document
        self._max_chunk_bytes = max_chunk_bytes
        self._deadline = deadline

    @property
    def document_size(self) -> int:
        """Return the payload size given to each document."""
        if self.expected_count <= 0:
            return 0
        return self.expected_size // self.expected_count

    async def fill(self) -> int:
        """Write the missing documents.

        Returns:
            Number of documents written; 0 when the target is already met
            or when the expected count or size is 0.

        Raises:
            ConfigError: If no collection handle was given.
            StoreError: If counting or writing fails.
        """
        if self.expected_count <= 0 or self.expected_size <= 0:
            return 0

        if self._collection is None:
            msg = "Collection handle can not be None"
            raise ConfigError(msg)

        collection = self._collection
        current = await collection.count()
        size = self.document_size
        written = 0

        while self.expected_count - current > 0:
            documents: list[dict[str, Any]] = []
            sent = 0
            for _ in range(self.expected_count - current):
                documents.append(self._make_document(size))
                sent += size
                if sent > self._max_chunk_bytes:
                    break

            logger.info("%s Count: %d/%d", collection.name, current, self.expected_count)
            await collection.submit_batch(documents, OverwritePolicy.ERROR, self._deadline)
            current += len(documents)
            written += len(documents)
            logger.info("%s Count: %d/%d", collection.name, current, self.expected_count)

        logger.info("Finished %s, Count: %d", collection.name, self.expected_count)
        return written
