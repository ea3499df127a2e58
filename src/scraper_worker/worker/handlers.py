from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Union

from scraper_worker.main.logging import get_logger
from scraper_worker.work_items.classification import WorkItemKind
from scraper_worker.work_items.work_item import WorkItemType

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Any]]

# Keyword arguments a handler may declare to have them passed in
INJECTABLE_PARAMETERS = frozenset({"client", "context"})


def _as_work_item_type(kind: Union[WorkItemType, WorkItemKind, str]) -> WorkItemType:
    if isinstance(kind, WorkItemKind):
        if kind.work_item_type is None:
            raise ValueError(f"{kind.value!r} is not a work item type")
        return kind.work_item_type

    value = kind.value if isinstance(kind, WorkItemType) else kind
    try:
        return WorkItemType(value)
    except ValueError:
        raise ValueError(f"{value!r} is not a work item type") from None


class HandlerRegistry:
    """
    Per-kind handlers supplied by a concrete scraper.

    Example:
        registry = HandlerRegistry()

        @registry.handler(WorkItemType.SCRAPE)
        async def scrape(work_item: ScrapeWorkItem, client: QueueClient):
            ...
            await client.send_scrape_records([...])

    Handlers do their work and raise on failure. Progress and the terminal
    completed/failed reports are sent around them by the dispatch loop.
    """

    def __init__(self):
        self._handlers: Dict[WorkItemType, Handler] = {}

    @property
    def kinds(self) -> frozenset[WorkItemType]:
        return frozenset(self._handlers)

    def __contains__(self, kind) -> bool:
        try:
            return _as_work_item_type(kind) in self._handlers
        except ValueError:
            return False

    def register(self, kind: Union[WorkItemType, WorkItemKind, str], handler: Handler) -> None:
        work_item_type = _as_work_item_type(kind)

        if work_item_type is WorkItemType.NOOP:
            raise ValueError("NOOP work items are handled by the dispatch loop")

        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler for {work_item_type.value} must be an async function")

        if work_item_type in self._handlers:
            raise ValueError(f"A handler for {work_item_type.value} is already registered")

        self._handlers[work_item_type] = handler

    def handler(self, kind: Union[WorkItemType, WorkItemKind, str]):
        def decorator(func: Handler) -> Handler:
            self.register(kind, func)
            return func

        return decorator

    def include_registry(self, registry: HandlerRegistry) -> None:
        for work_item_type, handler in registry._handlers.items():
            self.register(work_item_type, handler)

    def get(self, kind: Union[WorkItemType, WorkItemKind, str]) -> Handler | None:
        try:
            return self._handlers.get(_as_work_item_type(kind))
        except ValueError:
            return None

    @staticmethod
    def _get_kwargs(handler: Handler, available: Dict[str, Any]) -> Dict[str, Any]:
        parameters = inspect.signature(handler).parameters
        if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in parameters.values()):
            return dict(available)

        return {name: value for name, value in available.items() if name in parameters}

    async def invoke(self, handler: Handler, work_item: Any, **injectables: Any) -> Any:
        unknown = set(injectables) - INJECTABLE_PARAMETERS
        if unknown:
            raise TypeError(f"Cannot inject {sorted(unknown)} into handlers")

        kwargs = self._get_kwargs(handler, injectables)
        return await handler(work_item, **kwargs)
