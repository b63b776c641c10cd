from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

BatchOutcome = List[Tuple[T, Union[R, BaseException]]]


@dataclass(frozen=True)
class BatchConfig:
    batch_size: int = 10
    delay_s: float = 1.0
    # 0 disables the limit
    time_limit_s: float = 0.0
    item_limit: int = 0

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.delay_s < 0 or self.time_limit_s < 0 or self.item_limit < 0:
            raise ValueError("Batch delay and limits must not be negative.")


async def iter_batches(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[R]],
    config: BatchConfig,
) -> AsyncIterator[BatchOutcome]:
    """Run ``operation`` over ``items`` in bounded concurrent batches.

    Each completed batch is yielded as ``(item, result or exception)``
    pairs in item order, so the consumer can handle results one batch at
    a time. No new batch starts once the time or item limit is reached.
    """
    pending = list(items)
    if config.item_limit and len(pending) > config.item_limit:
        logger.warning(
            f"Item limit {config.item_limit} reached, skipping {len(pending) - config.item_limit} items"
        )
        pending = pending[: config.item_limit]

    start = time.perf_counter()
    total_batches = (len(pending) + config.batch_size - 1) // config.batch_size
    for index in range(total_batches):
        if index > 0:
            elapsed = time.perf_counter() - start
            if config.time_limit_s and elapsed >= config.time_limit_s:
                remaining = len(pending) - index * config.batch_size
                logger.warning(
                    f"Time limit {config.time_limit_s:g}s reached after {elapsed:.2f}s, "
                    f"skipping {remaining} items"
                )
                return
            if config.delay_s:
                await asyncio.sleep(config.delay_s)

        batch = pending[index * config.batch_size : (index + 1) * config.batch_size]
        t0 = time.perf_counter()
        results = await asyncio.gather(
            *(operation(item) for item in batch), return_exceptions=True
        )
        failures = sum(1 for result in results if isinstance(result, BaseException))
        logger.info(
            f"[MINUTE TIMING] batch {index + 1}/{total_batches}: "
            f"{time.perf_counter() - t0:.2f}s ({len(batch)} items, {failures} failed)"
        )
        yield list(zip(batch, results))
