from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScraperDetails(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    account_id: str
    name: str
    comment: Optional[str] = None
    enabled: bool
    custom_settings: Dict[str, Any] = Field(default_factory=dict)


class Registration(CamelModel):
    scraper: ScraperDetails
    configured: bool


class ScrapeFile(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    file_name: str


class ScrapeResult(CamelModel):
    id: str
    metadata: Any = None
    created_on: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    )
    files: List[ScrapeFile] = Field(default_factory=list)


class ScrapingError(CamelModel):
    id: str
    work_assignments_id: str
    metadata: Any = None
    files: List[ScrapeFile] = Field(default_factory=list)


class HealthState(str, Enum):
    GREEN = "GREEN"
    AMBER = "AMBER"
    RED = "RED"
    GREY = "GREY"
