"""Settle-all fan-out under a concurrency cap."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from github_sync_engine.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[R]):
    """Outcome of a batch: successful results and (index, error) pairs.

    ``errors`` records which input failed by its index; callers should not
    rely on ``results`` lining up with the inputs.
    """

    results: list[R] = field(default_factory=list)
    errors: list[tuple[int, Exception]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.results) + len(self.errors)

    @property
    def success_count(self) -> int:
        return len(self.results)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    @property
    def all_succeeded(self) -> bool:
        return not self.errors


async def process_all(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
) -> BatchResult[R]:
    """Run ``worker`` over every item, at most ``concurrency`` at a time.

    One item's failure never stops the others. Every item ends up either in
    ``results`` or in ``errors``.

    Args:
        items: Inputs to process
        worker: Async function applied to each item
        concurrency: Maximum simultaneous worker calls

    Returns:
        BatchResult with ``len(results) + len(errors) == len(items)``
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    result: BatchResult[R] = BatchResult()
    if not items:
        return result

    semaphore = asyncio.Semaphore(concurrency)

    async def run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    outcomes = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)

    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, Exception):
            result.errors.append((index, outcome))
        elif isinstance(outcome, BaseException):
            # CancelledError and friends must not be swallowed
            raise outcome
        else:
            result.results.append(outcome)

    if result.errors:
        logger.debug("Batch finished: {} ok, {} failed", result.success_count, result.failure_count)
    return result
