"""
Fire-and-forget task queue.

Work that must not block navigation (saves, uploads, transcription
triggers) is submitted here; failures are logged instead of propagated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from betterphone.shared.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskQueue:
    """Tracks background tasks so they can be counted, awaited or cancelled."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self.failed_count = 0

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop; never raises on its failure."""
        task = asyncio.create_task(self._run(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], name: str | None) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed_count += 1
            logger.exception("Background task failed", extra={"task": name})
            return None

    async def drain(self) -> None:
        """Wait for every submitted task, including ones submitted meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        if not tasks:
            return
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled background tasks", extra={"count": len(tasks)})
