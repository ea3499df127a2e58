from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)
from pydantic.alias_generators import to_camel

Number = Union[StrictInt, StrictFloat]


class WorkItemType(str, Enum):
    CRAWL = "CRAWL"
    NOOP = "NOOP"
    SCRAPE = "SCRAPE"
    STREAM = "STREAM"
    HEALTHCHECK = "HEALTHCHECK"


class WireModel(BaseModel):
    """Base for payloads received from the control plane.

    Fields validate by their camelCase wire name only; a snake_case key is an
    unknown extra and does not satisfy the field.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="ignore",
        frozen=True,
    )


class TaggedWorkItem(WireModel):
    expected_type: ClassVar[Optional[WorkItemType]] = None

    work_item_type: WorkItemType

    @model_validator(mode="after")
    def check_declared_type(self):
        if self.expected_type is not None and self.work_item_type != self.expected_type:
            raise ValueError(
                f"workItemType {self.work_item_type.value} does not match {self.expected_type.value}"
            )
        return self


class NoopWorkItem(TaggedWorkItem):
    expected_type: ClassVar[Optional[WorkItemType]] = WorkItemType.NOOP

    noop_for_seconds: Number
    id: Optional[StrictStr] = None
    scraper_id: Optional[StrictStr] = None
    created_on: Optional[StrictStr] = None


class WorkItem(TaggedWorkItem):
    id: StrictStr
    scraper_id: StrictStr
    created_on: StrictStr
    valid_from: StrictStr
    valid_to: StrictStr
    priority: Number
    task: Any = None


class CrawlWorkItem(WorkItem):
    expected_type: ClassVar[Optional[WorkItemType]] = WorkItemType.CRAWL


class ScrapeWorkItem(WorkItem):
    expected_type: ClassVar[Optional[WorkItemType]] = WorkItemType.SCRAPE


class StreamTask(WireModel):
    data_file_name: StrictStr
    reason: Any = Field(default=None, alias="_reason")


class StreamWorkItem(WorkItem):
    expected_type: ClassVar[Optional[WorkItemType]] = WorkItemType.STREAM

    task: StreamTask


class HealthCheckWorkItem(WorkItem):
    expected_type: ClassVar[Optional[WorkItemType]] = WorkItemType.HEALTHCHECK


DispatchableWorkItem = Union[CrawlWorkItem, ScrapeWorkItem, StreamWorkItem, HealthCheckWorkItem]
