"""Work item model: typed variants and the structural classifier."""

from scraper_worker.work_items.classification import (
    Classification,
    WorkItemKind,
    classify,
)
from scraper_worker.work_items.work_item import (
    CrawlWorkItem,
    DispatchableWorkItem,
    HealthCheckWorkItem,
    NoopWorkItem,
    ScrapeWorkItem,
    StreamTask,
    StreamWorkItem,
    WorkItem,
    WorkItemType,
)

__all__ = [
    "Classification",
    "CrawlWorkItem",
    "DispatchableWorkItem",
    "HealthCheckWorkItem",
    "NoopWorkItem",
    "ScrapeWorkItem",
    "StreamTask",
    "StreamWorkItem",
    "WorkItem",
    "WorkItemKind",
    "WorkItemType",
    "classify",
]
