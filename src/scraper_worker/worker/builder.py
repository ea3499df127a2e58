from __future__ import annotations

from typing import Callable

import aiohttp

from scraper_worker.main.aiohttp_client import aiohttp_client
from scraper_worker.main.config import Settings, get_settings
from scraper_worker.main.exceptions import MissingCredentialError
from scraper_worker.main.logging import get_logger
from scraper_worker.queue.queue_client import QueueClient
from scraper_worker.scrapers.worker_context import WorkerContext
from scraper_worker.worker.dispatch import ScraperWorker
from scraper_worker.worker.handlers import HandlerRegistry

logger = get_logger(__name__)


class ScraperBuilder:
    """Registers this process with the control plane and builds its worker.

    Example:
        worker = await (
            ScraperBuilder(registry)
            .set_api_key(settings.api_key)
            .set_custom_id("archiweb")
            .build()
        )
        await worker.process_work_items()
    """

    def __init__(self, registry: HandlerRegistry, settings: Settings | None = None):
        self.registry = registry
        self.settings = settings or get_settings()
        self.api_key: str = self.settings.api_key or ""
        self.custom_id: str = self.settings.custom_id or ""

    def set_api_key(self, api_key: str) -> ScraperBuilder:
        self.api_key = api_key
        return self

    def set_custom_id(self, custom_id: str) -> ScraperBuilder:
        self.custom_id = custom_id
        return self

    async def build(
        self,
        session_provider: Callable[[], aiohttp.ClientSession] = aiohttp_client,
    ) -> ScraperWorker:
        if not self.api_key:
            raise MissingCredentialError("API key")
        if not self.custom_id:
            raise MissingCredentialError("Custom scraper id")

        client = QueueClient(
            base_url=self.settings.base_url,
            api_key=self.api_key,
            session_provider=session_provider,
        )
        registration = await client.register(self.custom_id)

        context = WorkerContext(
            api_key=self.api_key,
            custom_id=self.custom_id,
            details=registration.scraper,
            configured=registration.configured,
        )
        logger.info(
            f"Registered scraper {registration.scraper.name}",
            extra={
                "scraper_id": context.scraper_id,
                "instance_id": context.instance_id,
                "configured": context.configured,
                "handled_types": sorted(kind.value for kind in self.registry.kinds),
            },
        )

        return ScraperWorker(
            context=context,
            client=client.bind(context),
            registry=self.registry,
            settings=self.settings,
        )
