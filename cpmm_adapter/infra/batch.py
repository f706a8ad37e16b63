"""
Bounded-concurrency batch execution
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..config import config as global_config

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[T, R]):
    """
    Outcome of a batch run

    Attributes:
        succeeded: (item, value) pairs in input order
        failed: (item, exception) pairs in input order
    """
    succeeded: List[Tuple[T, R]] = field(default_factory=list)
    failed: List[Tuple[T, Exception]] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class TaskBatch:
    """
    Runs an async worker over items in fixed-size batches.

    Items inside one batch run concurrently; batches run one after another
    with a short pause between them. A failing item is recorded in
    BatchResult.failed and does not stop the rest.

    Usage:
        batch = TaskBatch(concurrency=5)
        result = await batch.run(pool_ids, fetch_pool)
    """

    def __init__(
        self,
        concurrency: Optional[int] = None,
        inter_batch_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._concurrency = concurrency if concurrency is not None else global_config.batch.concurrency
        self._delay = inter_batch_delay if inter_batch_delay is not None else global_config.batch.inter_batch_delay
        if self._concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._sleep = sleep

    async def run(self, items: Sequence[T], worker: Callable[[T], Awaitable[R]]) -> BatchResult:
        result: BatchResult = BatchResult()
        items = list(items)

        for start in range(0, len(items), self._concurrency):
            chunk = items[start:start + self._concurrency]
            outcomes: List[Any] = await asyncio.gather(
                *(worker(item) for item in chunk),
                return_exceptions=True,
            )
            for item, outcome in zip(chunk, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"Batch item {item!r} failed: {outcome}")
                    result.failed.append((item, outcome))
                else:
                    result.succeeded.append((item, outcome))

            if start + self._concurrency < len(items) and self._delay > 0:
                await self._sleep(self._delay)

        logger.debug(f"Batch finished: {len(result.succeeded)} ok, {len(result.failed)} failed")
        return result
