"""
Background save channel: non-blocking upserts of a session's answers.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from typing import Any

from betterphone.client.api import SurveyApiClient
from betterphone.client.tasks import BackgroundTaskQueue
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)


class BackgroundSaveChannel:
    """Enqueues saves stamped with a monotonic ``clientSeq``.

    The sequence starts from the wall clock in milliseconds so it keeps
    increasing across reloads; the server ignores any save older than the
    newest one it has stored.
    """

    def __init__(
        self,
        api: SurveyApiClient,
        tasks: BackgroundTaskQueue,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api = api
        self._tasks = tasks
        self._clock = clock
        self._last_seq = 0

    def next_seq(self) -> int:
        self._last_seq = max(self._last_seq + 1, int(self._clock() * 1000))
        return self._last_seq

    def save(
        self,
        session_id: str,
        answers: Mapping[str, Any],
        meta: Mapping[str, Any] | None = None,
    ) -> asyncio.Task[Any] | None:
        """Queue a save; returns the task, or None if there is no session yet."""
        if not session_id:
            logger.warning("Save skipped without a session id")
            return None
        payload = {"sessionId": session_id, **answers, **(meta or {}), "clientSeq": self.next_seq()}
        return self._tasks.submit(self._send(payload), name=f"save:{session_id}")

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return await self._api.save(payload)
        except Exception as exc:
            # Not retried
            logger.error(
                "Background save failed",
                extra={"session_id": payload["sessionId"], "client_seq": payload["clientSeq"], "error": str(exc)},
            )
            return None
