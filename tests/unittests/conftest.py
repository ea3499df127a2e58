import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from scraper_worker.main.config import Settings, reset_settings
from scraper_worker.main.log_context import clear_log_context
from scraper_worker.queue.queue_client import QueueClient
from scraper_worker.scrapers.scraper_models import ScraperDetails
from scraper_worker.scrapers.worker_context import WorkerContext

BASE_URL = "https://queue.test/rest/v2/control/"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings with explicit values for unit tests.

    Provides a clean, isolated configuration that doesn't depend on the
    .env file or environment variables.
    """
    return Settings(
        api_key="unit-test-api-key",
        custom_id="unit-test-scraper",
        base_url=BASE_URL,
        work_item_progress_interval_seconds=60.0,
        noop_sleep_seconds=3.0,
    )


@pytest.fixture(autouse=True)
def reset_settings_after_test():
    """Reset settings and logging context after each test to prevent state leakage."""
    yield
    reset_settings()
    clear_log_context()


@dataclass
class RecordedRequest:
    method: str
    url: str
    endpoint: str
    params: dict | None
    headers: dict
    data: Any = None

    @property
    def json(self) -> Any:
        return json.loads(self.data)


class FakeResponse:
    """Fake aiohttp response object."""

    def __init__(self, payload: Any = None, status: int = 200, raw: bytes | None = None):
        self.status = status
        if raw is not None:
            self._body = raw
        elif payload is not None:
            self._body = json.dumps(payload).encode("utf-8")
        else:
            self._body = b""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def read(self) -> bytes:
        return self._body


@dataclass
class FakeSession:
    """Fake aiohttp ClientSession routing on the endpoint name after the base URL.

    ``respond`` queues responses per endpoint; the last queued response is
    repeated once the queue is drained. Unrouted endpoints answer ``200``
    with an empty body.
    """

    requests: list[RecordedRequest] = field(default_factory=list)
    _responses: dict[str, list[FakeResponse]] = field(default_factory=dict)
    _errors: dict[str, BaseException] = field(default_factory=dict)

    def respond(self, endpoint: str, payload: Any = None, status: int = 200, raw: bytes | None = None):
        self._responses.setdefault(endpoint, []).append(FakeResponse(payload, status, raw))
        return self

    def fail(self, endpoint: str, exc: BaseException):
        self._errors[endpoint] = exc
        return self

    def request(self, method, url, *, params=None, headers=None, data=None):
        assert url.startswith(BASE_URL), f"Unexpected URL {url}"
        endpoint = url[len(BASE_URL):].split("/")[0]
        self.requests.append(
            RecordedRequest(
                method=method,
                url=url,
                endpoint=endpoint,
                params=params,
                headers=headers or {},
                data=data,
            )
        )

        if endpoint in self._errors:
            raise self._errors[endpoint]

        queued = self._responses.get(endpoint)
        if not queued:
            return FakeResponse()
        if len(queued) > 1:
            return queued.pop(0)
        return queued[0]

    def calls(self, endpoint: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.endpoint == endpoint]

    def __call__(self):
        # Stands in for the aiohttp_client session provider
        return self


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def scraper_details() -> ScraperDetails:
    return ScraperDetails(
        id="scraper-1",
        account_id="account-1",
        name="Archiweb",
        comment=None,
        enabled=True,
        custom_settings={"baseDomain": "https://www.archiweb.cz"},
    )


@pytest.fixture
def worker_context(scraper_details) -> WorkerContext:
    return WorkerContext(
        api_key="unit-test-api-key",
        custom_id="archiweb",
        details=scraper_details,
        configured=True,
        instance_id=4242,
    )


@pytest.fixture
def queue_client(fake_session, worker_context) -> QueueClient:
    return QueueClient(
        base_url=BASE_URL,
        api_key="unit-test-api-key",
        session_provider=fake_session,
        context=worker_context,
    )


def work_item_payload(work_item_type: str = "SCRAPE", **overrides) -> dict:
    payload = {
        "id": "w1",
        "scraperId": "scraper-1",
        "workItemType": work_item_type,
        "createdOn": "2024-05-01T10:00:00.000Z",
        "validFrom": "2024-05-01T10:00:00.000Z",
        "validTo": "2024-05-02T10:00:00.000Z",
        "priority": 1,
        "task": {"url": "https://www.archiweb.cz/n/domaci/1", "section": "zpravy"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload():
    return work_item_payload
