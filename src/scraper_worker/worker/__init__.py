"""Worker components: heartbeat, lifecycle reporting, handlers and the dispatch loop.

Modules:
    heartbeat: Recurring progress report bound to one claimed work item
    lifecycle: Heartbeat scope plus the completed/failed terminal reports
    handlers: Per-kind handler registry supplied by concrete scrapers
    dispatch: The claim → classify → handle loop
    builder: Registration and construction of a ready-to-run worker
"""

from scraper_worker.worker.builder import ScraperBuilder
from scraper_worker.worker.dispatch import ScraperWorker, WorkerState
from scraper_worker.worker.handlers import HandlerRegistry
from scraper_worker.worker.heartbeat import ProgressHeartbeat
from scraper_worker.worker.lifecycle import (
    LifecycleReporter,
    WorkItemCancelledError,
    WorkItemOutcome,
)

__all__ = [
    "HandlerRegistry",
    "LifecycleReporter",
    "ProgressHeartbeat",
    "ScraperBuilder",
    "ScraperWorker",
    "WorkItemCancelledError",
    "WorkItemOutcome",
    "WorkerState",
]
