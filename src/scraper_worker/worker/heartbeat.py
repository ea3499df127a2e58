"""Progress heartbeat for a single claimed work item.

While a handler runs, the control plane expects a ``workItemProgress`` call
every interval. Each beat is independent: a failed beat is logged and the
next one is still attempted. The heartbeat never aborts the handler.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Awaitable, Callable

from scraper_worker.main.exceptions import QueueUnavailableError
from scraper_worker.main.logging import get_logger

logger = get_logger(__name__)

ProgressReport = Callable[[str], Awaitable[Any]]


class ProgressHeartbeat:
    """Recurring progress report bound to one work item id.

    Use as an async context manager so the timer task is always cancelled
    and awaited before the block is left:

        async with ProgressHeartbeat(work_item.id, client.work_item_progress, 60):
            await handler(work_item)
    """

    def __init__(
        self,
        work_item_id: str,
        report: ProgressReport,
        interval_seconds: float,
    ):
        self._work_item_id = work_item_id
        self._report = report
        self._interval_seconds = interval_seconds

        self._task: asyncio.Task | None = None
        self._beats: int = 0
        self._failed_beats: int = 0

    @property
    def beats(self) -> int:
        """Number of progress reports sent so far."""
        return self._beats

    @property
    def failed_beats(self) -> int:
        return self._failed_beats

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self._beat()

    async def _beat(self) -> None:
        try:
            await self._report(self._work_item_id)
            self._beats += 1
        except QueueUnavailableError as exc:
            self._failed_beats += 1
            logger.warning(
                f"Progress heartbeat not delivered: {exc}",
                extra={"work_item_id": self._work_item_id, "failed_beats": self._failed_beats},
            )
        except Exception:
            self._failed_beats += 1
            logger.exception(
                "Progress heartbeat raised",
                extra={"work_item_id": self._work_item_id, "failed_beats": self._failed_beats},
            )

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"work-item-progress-{self._work_item_id}"
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        logger.debug(
            "Progress heartbeat stopped",
            extra={"work_item_id": self._work_item_id, "beats": self._beats},
        )

    async def __aenter__(self) -> ProgressHeartbeat:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
