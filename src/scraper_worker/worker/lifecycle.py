from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from scraper_worker.main.exceptions import QueueUnavailableError
from scraper_worker.main.logging import get_logger
from scraper_worker.queue.queue_client import QueueClient
from scraper_worker.worker.heartbeat import ProgressHeartbeat

logger = get_logger(__name__)


class WorkItemCancelledError(Exception):
    def __init__(self, work_item_id: str):
        self.work_item_id = work_item_id
        super().__init__(f"Work item {work_item_id} was cancelled")


@dataclass
class WorkItemOutcome:
    work_item_id: str
    error: BaseException | None = None
    progress_reports: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class LifecycleReporter:
    """Heartbeat and terminal reports for claimed work items.

    For each item handed to ``run``:
    - progress is reported every ``progress_interval_seconds`` while the handler runs
    - the heartbeat is stopped before any terminal report goes out
    - success sends ``workItemCompleted``
    - failure sends ``workItemFailed`` and then ``workItemCompleted``; the
      control plane reads "completed" as "released by this instance" whatever
      the outcome was
    """

    def __init__(self, client: QueueClient, progress_interval_seconds: float):
        self.client = client
        self.progress_interval_seconds = progress_interval_seconds

    def heartbeat(self, work_item_id: str) -> ProgressHeartbeat:
        return ProgressHeartbeat(
            work_item_id=work_item_id,
            report=self.client.work_item_progress,
            interval_seconds=self.progress_interval_seconds,
        )

    async def run(
        self,
        work_item_id: str,
        handler: Callable[[], Awaitable[Any]],
    ) -> WorkItemOutcome:
        async with self.report_outcome(work_item_id) as outcome:
            heartbeat = self.heartbeat(work_item_id)
            try:
                async with heartbeat:
                    await handler()
            finally:
                outcome.progress_reports = heartbeat.beats

        return outcome

    @asynccontextmanager
    async def report_outcome(self, work_item_id: str) -> AsyncIterator[WorkItemOutcome]:
        """Send exactly one terminal report sequence for the wrapped block."""
        outcome = WorkItemOutcome(work_item_id=work_item_id)

        try:
            yield outcome
        except asyncio.CancelledError:
            # Process shutdown: release the item before letting the cancellation through
            logger.warning(
                "Work item cancelled",
                extra={"work_item_id": work_item_id},
            )
            outcome.error = WorkItemCancelledError(work_item_id)
            await self.work_item_failed(work_item_id, outcome.error)
            await self.work_item_completed(work_item_id)
            raise
        except Exception as exc:
            logger.exception(
                "Work item handler failed",
                extra={"work_item_id": work_item_id, "error_type": type(exc).__name__},
            )
            outcome.error = exc
            await self.work_item_failed(work_item_id, exc)
            await self.work_item_completed(work_item_id)
        else:
            await self.work_item_completed(work_item_id)

    async def work_item_completed(self, work_item_id: str) -> None:
        try:
            await self.client.work_item_completed(work_item_id)
        except QueueUnavailableError as exc:
            logger.warning(
                f"Completion report not delivered: {exc}",
                extra={"work_item_id": work_item_id},
            )
        except Exception:
            logger.exception(
                "Completion report raised",
                extra={"work_item_id": work_item_id},
            )

    async def work_item_failed(self, work_item_id: str, error: BaseException) -> None:
        try:
            await self.client.work_item_failed(work_item_id, error)
        except QueueUnavailableError as exc:
            logger.warning(
                f"Failure report not delivered: {exc}",
                extra={"work_item_id": work_item_id},
            )
        except Exception:
            logger.exception(
                "Failure report raised",
                extra={"work_item_id": work_item_id},
            )
