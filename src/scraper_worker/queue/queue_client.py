from __future__ import annotations

import asyncio
import json
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Union

import aiohttp
from pydantic import BaseModel, ValidationError

from scraper_worker.main.aiohttp_client import aiohttp_client
from scraper_worker.main.exceptions import (
    QueueUnavailableError,
    RegistrationError,
    WorkerNotConfiguredError,
)
from scraper_worker.main.logging import get_logger
from scraper_worker.scrapers.scraper_models import (
    HealthState,
    Registration,
    ScrapeResult,
    ScrapingError,
)
from scraper_worker.scrapers.worker_context import WorkerContext

logger = get_logger(__name__)

RESPONSE_LOG_LIMIT = 2000


class Endpoint(str, Enum):
    WORK_ITEM_PROGRESS = "workItemProgress"
    WORK_ITEM_FAILED = "workItemFailed"
    WORK_ITEM_COMPLETED = "workItemCompleted"
    SEND_EMAIL = "sendEmail"
    RECEIVE_SCRAPING_ERRORS = "receiveScrapingErrors"
    RECEIVE_SCRAPER_TARGETS = "receiveScraperTargets"
    RECEIVE_SCRAPER_RECORDS = "receiveScraperRecords"
    RECEIVE_HEALTH_CHECK_INFO = "receiveHealthcheckInfo"
    RECEIVE_FILE = "receiveFile"
    FILE_EXISTS = "fileExists"
    REGISTER = "register"
    FILE = "file"
    NEXT_WORK_ITEM = "getNextWorkItem"


@dataclass(frozen=True)
class QueueResponse:
    endpoint: Endpoint
    status: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ``ValueError`` on an empty or invalid body."""
        return json.loads(self.content)


def _dump(value: Union[BaseModel, Any]) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    return value


def format_stacktrace(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


class QueueClient:
    """
    Client for the control-plane endpoints a scraper worker talks to.

    Every request carries the bearer credential. Non-2xx responses are logged
    together with the request that caused them and handed back to the caller
    unchanged; only a request that got no response at all raises
    (``QueueUnavailableError``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session_provider: Callable[[], aiohttp.ClientSession] = aiohttp_client,
        context: Optional[WorkerContext] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.api_key = api_key
        self.session_provider = session_provider
        self.context = context

    def bind(self, context: WorkerContext) -> QueueClient:
        """Return a client bound to a registered worker identity."""
        return QueueClient(
            base_url=self.base_url,
            api_key=context.api_key,
            session_provider=self.session_provider,
            context=context,
        )

    def _require_context(self) -> WorkerContext:
        if self.context is None:
            raise WorkerNotConfiguredError()
        return self.context

    @property
    def _instance_id(self) -> str:
        return str(self._require_context().instance_id)

    @property
    def _scraper_id(self) -> str:
        return self._require_context().scraper_id

    def _url(self, endpoint: Endpoint, path: str = "") -> str:
        url = f"{self.base_url}{endpoint.value}"
        if path:
            url += "/" + path.lstrip("/")
        return url

    async def request(
        self,
        endpoint: Endpoint,
        *,
        path: str = "",
        query_params: Optional[Dict[str, str]] = None,
        method: str = "GET",
        body: Any = None,
        form: Optional[aiohttp.FormData] = None,
        error_message: str,
    ) -> QueueResponse:
        url = self._url(endpoint, path)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        kwargs: Dict[str, Any] = {}
        if form is not None:
            kwargs["data"] = form
        else:
            headers["Content-Type"] = "application/json"
            if body is not None:
                kwargs["data"] = json.dumps(body, default=str)

        try:
            async with self.session_provider().request(
                method,
                url,
                params=query_params,
                headers=headers,
                **kwargs,
            ) as resp:
                response = QueueResponse(
                    endpoint=endpoint,
                    status=resp.status,
                    content=await resp.read(),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(
                f"{error_message}: {type(exc).__name__}: {exc}",
                extra={
                    "endpoint": endpoint.value,
                    "method": method,
                    "query_params": query_params,
                    "request_body": body,
                    "error_type": type(exc).__name__,
                },
            )
            raise QueueUnavailableError(endpoint.value, exc) from exc

        if not response.ok:
            logger.error(
                error_message,
                extra={
                    "endpoint": endpoint.value,
                    "method": method,
                    "query_params": query_params,
                    "request_body": body,
                    "status_code": response.status,
                    "response": response.text()[:RESPONSE_LOG_LIMIT],
                },
            )

        return response

    async def register(self, custom_id: str) -> Registration:
        response = await self.request(
            Endpoint.REGISTER,
            query_params={"customId": custom_id},
            error_message="Failed to register scraper",
        )
        if response.status != 200:
            raise RegistrationError(response.status, response.text()[:RESPONSE_LOG_LIMIT])

        try:
            return Registration.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Registration response is not a valid scraper identity",
                extra={"endpoint": Endpoint.REGISTER.value, "error": str(exc)},
            )
            raise RegistrationError(response.status, response.text()[:RESPONSE_LOG_LIMIT]) from exc

    async def get_next_work_item(self) -> QueueResponse:
        return await self.request(
            Endpoint.NEXT_WORK_ITEM,
            query_params={
                "scraperId": self._scraper_id,
                "instanceId": self._instance_id,
            },
            error_message="Failed to get next work item",
        )

    async def work_item_progress(self, work_item_id: str) -> QueueResponse:
        return await self.request(
            Endpoint.WORK_ITEM_PROGRESS,
            query_params={
                "instanceId": self._instance_id,
                "workItemId": work_item_id,
            },
            method="POST",
            error_message="Failed to report work item progress",
        )

    async def work_item_completed(self, work_item_id: str) -> QueueResponse:
        return await self.request(
            Endpoint.WORK_ITEM_COMPLETED,
            query_params={
                "instanceId": self._instance_id,
                "workItemId": work_item_id,
            },
            method="POST",
            error_message="Failed to report work item completion",
        )

    async def work_item_failed(self, work_item_id: str, error: BaseException) -> QueueResponse:
        return await self.request(
            Endpoint.WORK_ITEM_FAILED,
            query_params={"instanceId": self._instance_id},
            method="POST",
            body={
                "workItemId": work_item_id,
                "msgs": [
                    {
                        "msg": str(error),
                        "stacktrace": format_stacktrace(error),
                    }
                ],
            },
            error_message="Failed to report work item failure",
        )

    async def send_scrape_targets(self, metadata_list: Iterable[Any]) -> QueueResponse:
        """Push crawl discoveries; each becomes a future SCRAPE work item."""
        return await self.request(
            Endpoint.RECEIVE_SCRAPER_TARGETS,
            method="POST",
            body=[
                {"sourceId": self._scraper_id, "metadata": _dump(metadata)}
                for metadata in metadata_list
            ],
            error_message="Failed to send scrape targets",
        )

    async def send_scrape_records(
        self, records: Sequence[Union[ScrapeResult, Dict[str, Any]]]
    ) -> QueueResponse:
        return await self.request(
            Endpoint.RECEIVE_SCRAPER_RECORDS,
            query_params={"scraperId": self._scraper_id},
            method="POST",
            body=[_dump(record) for record in records],
            error_message="Failed to send scrape records",
        )

    async def send_scraping_errors(
        self, errors: Sequence[Union[ScrapingError, Dict[str, Any]]]
    ) -> QueueResponse:
        return await self.request(
            Endpoint.RECEIVE_SCRAPING_ERRORS,
            method="POST",
            body=[_dump(error) for error in errors],
            error_message="Failed to send scraping errors",
        )

    async def send_health_check_info(self, state: HealthState, message: str) -> QueueResponse:
        return await self.request(
            Endpoint.RECEIVE_HEALTH_CHECK_INFO,
            method="POST",
            body={
                "scraperId": self._scraper_id,
                "metadata": {"message": message},
                "state": HealthState(state).value,
            },
            error_message="Failed to send health check info",
        )

    async def send_email(self, receiver: str, subject: str, content: str) -> QueueResponse:
        return await self.request(
            Endpoint.SEND_EMAIL,
            method="POST",
            body={
                "emailAddressesTo": [receiver],
                "subject": subject,
                "content": content,
            },
            error_message="Failed to send email",
        )

    async def get_file(self, file_name: str) -> Optional[bytes]:
        response = await self.request(
            Endpoint.FILE,
            path=self._scraper_id,
            query_params={"fileName": file_name},
            error_message="Failed to get file",
        )
        if not response.ok:
            return None
        return response.content

    async def file_exists(self, file_name: str) -> bool:
        response = await self.request(
            Endpoint.FILE_EXISTS,
            path=self._scraper_id,
            query_params={"fileName": file_name},
            error_message="Failed to check file existence",
        )
        if not response.ok:
            return False
        try:
            return response.json() is True
        except ValueError:
            logger.warning(
                "fileExists returned a non-JSON body",
                extra={"endpoint": Endpoint.FILE_EXISTS.value, "file_name": file_name},
            )
            return False

    async def send_file(
        self,
        file_name: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> QueueResponse:
        form = aiohttp.FormData()
        form.add_field("file", content, filename=file_name, content_type=content_type)

        return await self.request(
            Endpoint.RECEIVE_FILE,
            query_params={"fileStoreId": self._scraper_id},
            method="POST",
            form=form,
            error_message="Failed to send file",
        )
