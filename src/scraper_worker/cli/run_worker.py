"""Run a scraper worker against the control plane.

The handlers come from an importable ``HandlerRegistry``; by default only the
built-in health-check handler is registered.

Usage:
    scraper-worker --custom-id archiweb --handlers my_scrapers.archiweb:registry
    python -m scraper_worker.cli.run_worker --custom-id archiweb
"""

import argparse
import asyncio
import importlib
import sys

from scraper_worker.main.aiohttp_client import aiohttp_client
from scraper_worker.main.config import get_settings
from scraper_worker.main.exceptions import (
    MissingCredentialError,
    QueueUnavailableError,
    RegistrationError,
)
from scraper_worker.main.logging import get_logger
from scraper_worker.worker.builder import ScraperBuilder
from scraper_worker.worker.handlers import HandlerRegistry

logger = get_logger(__name__)

DEFAULT_HANDLERS = "scraper_worker.scrapers.health_check:registry"


def load_registry(reference: str) -> HandlerRegistry:
    """Import ``package.module:attribute`` and return the registry it names."""
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got {reference!r}")

    module = importlib.import_module(module_name)
    registry = getattr(module, attribute)
    if not isinstance(registry, HandlerRegistry):
        raise TypeError(f"{reference} is not a HandlerRegistry")

    return registry


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--custom-id",
        default=None,
        help="Custom scraper id to register with (defaults to CUSTOM_ID)",
    )
    parser.add_argument(
        "--handlers",
        default=DEFAULT_HANDLERS,
        help="HandlerRegistry to dispatch to, as module:attribute",
    )
    return parser.parse_args(argv)


async def run(custom_id: str | None, registry: HandlerRegistry) -> int:
    settings = get_settings()

    builder = ScraperBuilder(registry, settings=settings)
    if custom_id:
        builder.set_custom_id(custom_id)

    aiohttp_client.start(settings)
    try:
        try:
            worker = await builder.build()
        except MissingCredentialError as e:
            logger.error(f"{e}, set it in the environment or .env file")
            return 1
        except RegistrationError as e:
            logger.error(str(e), extra={"status_code": e.status, "response": e.body})
            return 1
        except QueueUnavailableError as e:
            logger.error(
                f"Control plane unreachable during registration: {e}",
                extra={"endpoint": e.endpoint},
            )
            return 1

        await worker.process_work_items()
        return 0
    finally:
        await aiohttp_client.stop()


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        registry = load_registry(args.handlers)
    except (ImportError, AttributeError, TypeError, ValueError) as e:
        logger.error(f"Could not load handlers from {args.handlers}: {e}")
        return 2

    try:
        return asyncio.run(run(args.custom_id, registry))
    except KeyboardInterrupt:
        logger.info("Worker stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
