import asyncio
from typing import Set

from loguru import logger

from site_crawler.worker import CrawlWorker


class CrawlScheduler:
    """Runs each website crawl as its own background task.

    ``schedule`` returns as soon as the task is created. References to running
    tasks are kept so they are not garbage collected and so shutdown can wait
    for or cancel them.
    """

    def __init__(self, worker: CrawlWorker):
        self.worker = worker
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def schedule(self, website_id) -> asyncio.Task:
        task = asyncio.create_task(self.worker.run(website_id), name=f"crawl-{website_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Scheduled crawl for website {website_id}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"{task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{task.get_name()} crashed: {exc}")

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
