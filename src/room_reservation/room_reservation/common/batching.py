"""Chunked transactional writer.

Stores cap how many writes fit in a single commit. ``ChunkedWriter`` takes a
lazy stream of pending mutations, groups them into batches whose write cost
stays within ``max_writes`` and hands each batch to ``commit`` in order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchProgress:
    batches: int = 0
    items_submitted: int = 0
    items_applied: int = 0
    writes_submitted: int = 0

    @property
    def items_skipped(self) -> int:
        return self.items_submitted - self.items_applied


class ChunkedWriter(Generic[T]):
    def __init__(
        self,
        commit: Callable[[Sequence[T]], int],
        *,
        max_writes: int = 500,
        cost: Callable[[T], int] = lambda _item: 1,
        on_batch: Optional[Callable[[BatchProgress], None]] = None,
    ):
        if max_writes < 1:
            raise ValueError("max_writes must be at least 1")
        self._commit = commit
        self._max_writes = int(max_writes)
        self._cost = cost
        self._on_batch = on_batch

    def write_all(self, items: Iterable[T]) -> BatchProgress:
        """Commit every item; returns the progress reached.

        If a commit raises, earlier batches stay committed and the exception
        propagates; callers are expected to be safe to re-run.
        """
        progress = BatchProgress()
        batch: list[T] = []
        batch_writes = 0

        for item in items:
            cost = int(self._cost(item))
            if cost > self._max_writes:
                raise ValueError(f"Single item needs {cost} writes, batch limit is {self._max_writes}")
            if batch and batch_writes + cost > self._max_writes:
                self._flush(batch, batch_writes, progress)
                batch = []
                batch_writes = 0
            batch.append(item)
            batch_writes += cost

        if batch:
            self._flush(batch, batch_writes, progress)
        return progress

    def _flush(self, batch: list[T], writes: int, progress: BatchProgress) -> None:
        applied = int(self._commit(batch))
        progress.batches += 1
        progress.items_submitted += len(batch)
        progress.items_applied += applied
        progress.writes_submitted += writes
        logger.debug(
            "Committed batch %s (%s items, %s writes, %s applied)",
            progress.batches,
            len(batch),
            writes,
            applied,
        )
        if self._on_batch:
            self._on_batch(progress)
