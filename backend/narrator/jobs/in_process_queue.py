"""In-process job queue on asyncio.

A fixed number of worker tasks consume media item ids; each runs one pipeline at a time,
so several items progress concurrently while every pipeline stays strictly sequential.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List

from narrator.jobs.dispatcher import JobDispatcher

logger = logging.getLogger(__name__)


class InProcessQueue(JobDispatcher):
    def __init__(self, worker_fn: Callable[[str], Awaitable[None]], workers: int = 1):
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._worker_fn = worker_fn
        self._workers = max(1, workers)
        self._tasks: List[asyncio.Task] = []

    async def submit(self, media_item_id: str) -> None:
        await self._queue.put(media_item_id)

    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker_loop(n), name=f"pipeline-worker-{n}")
            for n in range(self._workers)
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def join(self) -> None:
        """Wait until every submitted item has been processed."""
        await self._queue.join()

    async def _worker_loop(self, n: int) -> None:
        while True:
            media_item_id = await self._queue.get()
            try:
                await self._worker_fn(media_item_id)
            except Exception:
                logger.exception("worker %d: pipeline for %s raised", n, media_item_id)
            finally:
                self._queue.task_done()
