"""Structural classification of work item payloads received from the queue.

The ``workItemType`` declared by the queue is only a hint. Each kind has a
required shape, and the shapes are tested in a fixed priority order:

    NOOP, SCRAPE, CRAWL, STREAM, HEALTHCHECK

The first shape that validates wins. A payload that satisfies none of them
(including one that fails its own declared shape) is UNKNOWN. Classification
never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from scraper_worker.work_items.work_item import (
    CrawlWorkItem,
    HealthCheckWorkItem,
    NoopWorkItem,
    ScrapeWorkItem,
    StreamWorkItem,
    WorkItemType,
)


class WorkItemKind(str, Enum):
    NOOP = "NOOP"
    CRAWL = "CRAWL"
    SCRAPE = "SCRAPE"
    STREAM = "STREAM"
    HEALTHCHECK = "HEALTHCHECK"
    UNKNOWN = "UNKNOWN"

    @property
    def work_item_type(self) -> Optional[WorkItemType]:
        if self is WorkItemKind.UNKNOWN:
            return None
        return WorkItemType(self.value)


@dataclass(frozen=True)
class Classification:
    kind: WorkItemKind
    work_item: Optional[BaseModel] = None


def _matches(model: type[BaseModel]) -> Callable[[Any], bool]:
    def predicate(payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False
        try:
            model.model_validate(payload)
        except ValidationError:
            return False
        return True

    predicate.__name__ = f"is_{model.__name__}"
    return predicate


is_noop_work_item = _matches(NoopWorkItem)
is_scrape_work_item = _matches(ScrapeWorkItem)
is_crawl_work_item = _matches(CrawlWorkItem)
is_stream_work_item = _matches(StreamWorkItem)
is_health_check_work_item = _matches(HealthCheckWorkItem)

# Evaluation order is part of the contract
CLASSIFIERS: tuple[tuple[WorkItemKind, Callable[[Any], bool], type[BaseModel]], ...] = (
    (WorkItemKind.NOOP, is_noop_work_item, NoopWorkItem),
    (WorkItemKind.SCRAPE, is_scrape_work_item, ScrapeWorkItem),
    (WorkItemKind.CRAWL, is_crawl_work_item, CrawlWorkItem),
    (WorkItemKind.STREAM, is_stream_work_item, StreamWorkItem),
    (WorkItemKind.HEALTHCHECK, is_health_check_work_item, HealthCheckWorkItem),
)


def classify(payload: Any) -> Classification:
    """Return the first kind whose shape ``payload`` satisfies, parsed into its model."""
    for kind, predicate, model in CLASSIFIERS:
        if predicate(payload):
            return Classification(kind=kind, work_item=model.model_validate(payload))

    return Classification(kind=WorkItemKind.UNKNOWN)
