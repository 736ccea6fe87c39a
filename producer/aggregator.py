"""Collects per-chunk results from concurrent uploads into one total."""

import asyncio
from typing import List, Optional

from common.logging_config import get_logger
from producer.models import ChunkResult, TransferReport

logger = get_logger(__name__)


class Aggregator:
    """
    Single consumer of dispatch results.

    Dispatch tasks ``submit`` into a completion queue; one dedicated task
    consumes exactly ``expected`` results, sums acknowledged bytes and
    publishes a TransferReport as its result.
    """

    def __init__(self, expected: int):
        """
        Initialize aggregator.

        Args:
            expected: Number of results to consume (the chunk count)
        """
        if expected < 0:
            raise ValueError("expected must be >= 0")
        self.expected = expected
        self._results: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Launch the consuming task."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def submit(self, result: ChunkResult) -> None:
        """Report one dispatch outcome."""
        await self._results.put(result)

    async def wait(self) -> TransferReport:
        """
        Block until every expected result has been consumed.

        Returns:
            Final TransferReport
        """
        return await self.start()

    async def close(self) -> None:
        """Cancel the consuming task if it is still waiting for results."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> TransferReport:
        total = 0
        results: List[ChunkResult] = []
        for _ in range(self.expected):
            result = await self._results.get()
            total += result.acknowledged_bytes
            results.append(result)
            logger.debug(
                f"Chunk {result.sequence_token} reported {result.acknowledged_bytes} bytes, "
                f"cumulative={total} ({len(results)}/{self.expected})"
            )
        return TransferReport(total_bytes=total, results=results)
