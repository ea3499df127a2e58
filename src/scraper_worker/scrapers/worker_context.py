from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from scraper_worker.scrapers.scraper_models import ScraperDetails


def generate_instance_id() -> int:
    """Random unsigned 32-bit id separating instances that share one scraper identity."""
    return secrets.randbits(32)


@dataclass(frozen=True)
class WorkerContext:
    """Identity of one running worker process, fixed at startup."""

    api_key: str = field(repr=False)
    custom_id: str
    details: ScraperDetails
    configured: bool
    instance_id: int = field(default_factory=generate_instance_id)

    @property
    def scraper_id(self) -> str:
        return self.details.id

    @property
    def log_context(self) -> dict:
        return {"instance_id": self.instance_id, "scraper_id": self.scraper_id}
