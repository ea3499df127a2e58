from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from scraper_worker.main.config import Settings, get_settings
from scraper_worker.main.exceptions import QueueUnavailableError, WorkerNotConfiguredError
from scraper_worker.main.log_context import set_log_context
from scraper_worker.main.logging import get_logger
from scraper_worker.queue.queue_client import QueueClient
from scraper_worker.scrapers.worker_context import WorkerContext
from scraper_worker.work_items.classification import Classification, WorkItemKind, classify
from scraper_worker.worker.handlers import HandlerRegistry
from scraper_worker.worker.lifecycle import LifecycleReporter, WorkItemOutcome

logger = get_logger(__name__)


class WorkerState(str, Enum):
    IDLE = "IDLE"
    CLAIMED = "CLAIMED"
    DISPATCHED = "DISPATCHED"


class ScraperWorker:
    """
    Claim → classify → heartbeat → handle → terminal report, one item at a time.

    Each iteration owns exactly one claimed work item. NOOP items idle the
    loop; UNKNOWN items (and items of a kind without a handler) are logged and
    abandoned without any report, leaving the queue's validity window to
    reclaim them. Nothing that happens while processing a single item stops
    the loop.
    """

    def __init__(
        self,
        context: WorkerContext,
        client: QueueClient,
        registry: HandlerRegistry,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        settings = settings or get_settings()

        self.context = context
        self.client = client if client.context is not None else client.bind(context)
        self.registry = registry
        self.noop_sleep_seconds = settings.noop_sleep_seconds
        self.reporter = LifecycleReporter(
            client=self.client,
            progress_interval_seconds=settings.work_item_progress_interval_seconds,
        )
        self._sleep = sleep

        self.state = WorkerState.IDLE
        self.current_work_item: Any = None

    async def process_work_items(self) -> None:
        """Run the dispatch loop until the process is stopped."""
        if not self.context.configured:
            error = WorkerNotConfiguredError(self.context.scraper_id)
            logger.error(
                "Scraper not configured, not processing work items",
                extra={"scraper_id": self.context.scraper_id, "error": str(error)},
            )
            return

        set_log_context(**self.context.log_context)
        logger.info(
            "Processing work items",
            extra={"custom_id": self.context.custom_id},
        )

        while True:
            await self.get_next_work_item()

    async def get_next_work_item(self) -> Optional[Classification]:
        """Run one iteration of the loop. Returns the classification of the claimed item."""
        self.state = WorkerState.IDLE

        try:
            response = await self.client.get_next_work_item()
        except QueueUnavailableError:
            await self._idle()
            return None

        if not response.ok:
            await self._idle()
            return None

        try:
            payload = response.json()
        except ValueError:
            payload = None

        self.state = WorkerState.CLAIMED
        classification = classify(payload)
        self.current_work_item = classification.work_item
        set_log_context(
            work_item_id=getattr(classification.work_item, "id", None),
            work_item_type=classification.kind.value,
        )

        try:
            match classification.kind:
                case WorkItemKind.NOOP:
                    await self._idle()
                case WorkItemKind.UNKNOWN:
                    logger.error(
                        "Unsupported work item type",
                        extra={"payload": payload},
                    )
                case _:
                    await self._dispatch(classification)
        finally:
            self.current_work_item = None
            self.state = WorkerState.IDLE
            set_log_context(work_item_id=None, work_item_type=None)

        return classification

    async def _idle(self) -> None:
        await self._sleep(self.noop_sleep_seconds)

    async def _dispatch(self, classification: Classification) -> Optional[WorkItemOutcome]:
        work_item = classification.work_item
        if classification.kind not in self.registry:
            logger.error(
                f"No handler registered for {classification.kind.value} work items",
                extra={"work_item_id": work_item.id},
            )
            return None

        handler = self.registry.get(classification.kind)
        self.state = WorkerState.DISPATCHED
        logger.debug("Dispatching work item", extra={"work_item_id": work_item.id})

        outcome = await self.reporter.run(
            work_item.id,
            lambda: self.registry.invoke(
                handler,
                work_item,
                client=self.client,
                context=self.context,
            ),
        )

        logger.info(
            "Work item finished",
            extra={
                "work_item_id": work_item.id,
                "succeeded": outcome.succeeded,
                "progress_reports": outcome.progress_reports,
            },
        )
        return outcome
