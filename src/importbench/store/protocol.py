"""Store-facing types consumed by the benchmark engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence


class OverwritePolicy(Enum):
    """Server-side behavior when a submitted document's key already exists.

    Values are the store's ``overwriteMode`` query parameter.
    """

    ERROR = "conflict"
    IGNORE = "ignore"
    REPLACE = "replace"
    UPDATE = "update"


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one accepted batch submission.

    Attributes:
        submitted: Number of documents sent.
        errors: Number of documents the store rejected individually.
    """

    submitted: int
    errors: int = 0

    @property
    def accepted(self) -> int:
        """Return the number of documents without a per-document error."""
        return self.submitted - self.errors


class CollectionHandle(Protocol):
    """An opened collection, shared by every worker of a run."""

    @property
    def name(self) -> str: ...

    async def count(self) -> int: ...

    async def submit_batch(
        self,
        documents: Sequence[dict[str, Any]],
        overwrite_policy: OverwritePolicy,
        deadline: float,
    ) -> BatchResult: ...
