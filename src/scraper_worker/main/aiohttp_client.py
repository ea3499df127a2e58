import time

import aiohttp

from scraper_worker.main.config import Settings, get_settings
from scraper_worker.main.logging import get_logger

logger = get_logger(__name__)


class AioHttpClient:
    session: aiohttp.ClientSession = None

    def _create_trace_config(self, slow_threshold_seconds: float) -> aiohttp.TraceConfig:
        """Create TraceConfig that times every request against the control plane."""
        trace = aiohttp.TraceConfig()

        async def on_request_start(session, trace_config_ctx, params):
            trace_config_ctx._request_start_time = time.perf_counter()

        async def on_request_end(session, trace_config_ctx, params):
            if not hasattr(trace_config_ctx, "_request_start_time"):
                return

            duration = time.perf_counter() - trace_config_ctx._request_start_time
            extra = {
                "event": "http_request",
                "method": params.method,
                "url": str(params.url),
                "status_code": params.response.status,
                "duration_ms": int(duration * 1000),
            }
            if duration > slow_threshold_seconds:
                logger.warning(
                    f"SLOW request to {params.url.path}",
                    extra={**extra, "threshold_ms": int(slow_threshold_seconds * 1000)},
                )
            else:
                logger.debug(f"Request to {params.url.path} completed", extra=extra)

        async def on_request_exception(session, trace_config_ctx, params):
            logger.debug(
                f"Request to {params.url.path} raised {type(params.exception).__name__}",
                extra={
                    "event": "http_request_exception",
                    "method": params.method,
                    "url": str(params.url),
                },
            )

        trace.on_request_start.append(on_request_start)
        trace.on_request_end.append(on_request_end)
        trace.on_request_exception.append(on_request_exception)

        return trace

    def start(self, settings: Settings | None = None):
        settings = settings or get_settings()

        timeout = aiohttp.ClientTimeout(
            total=settings.http_timeout_seconds,
            connect=settings.http_connect_timeout_seconds,
        )

        # One worker instance keeps at most a claim, a heartbeat and a few pushes in flight
        connector = aiohttp.TCPConnector(
            limit=20,
            limit_per_host=10,
            enable_cleanup_closed=True,
            use_dns_cache=True,
            ttl_dns_cache=300,
        )

        trace_config = self._create_trace_config(settings.http_slow_request_threshold_seconds)

        self.session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            trace_configs=[trace_config],
        )

    async def stop(self):
        if self.session is not None:
            await self.session.close()
        self.session = None

    def __call__(self) -> aiohttp.ClientSession:
        assert self.session is not None
        return self.session


aiohttp_client = AioHttpClient()
