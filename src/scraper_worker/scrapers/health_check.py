"""Built-in HEALTHCHECK handler.

Answers a health-check work item by reporting this instance as GREEN. Concrete
scrapers include ``registry`` in their own registry unless they need a
site-specific probe.
"""

from scraper_worker.queue.queue_client import QueueClient
from scraper_worker.scrapers.scraper_models import HealthState
from scraper_worker.scrapers.worker_context import WorkerContext
from scraper_worker.work_items.work_item import HealthCheckWorkItem, WorkItemType
from scraper_worker.worker.handlers import HandlerRegistry

registry = HandlerRegistry()


@registry.handler(WorkItemType.HEALTHCHECK)
async def report_healthy(
    work_item: HealthCheckWorkItem,
    client: QueueClient,
    context: WorkerContext,
) -> None:
    await client.send_health_check_info(
        HealthState.GREEN,
        f"Instance {context.instance_id} of {context.details.name} is processing work items",
    )
