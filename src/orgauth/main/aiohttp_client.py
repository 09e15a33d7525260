"""Process-wide aiohttp session for identity provider and management API calls."""

import time

import aiohttp

from orgauth.main.config import get_settings
from orgauth.main.logging import get_logger

logger = get_logger(__name__)

# Provider calls are attempted once per request, so keep them bounded
DEFAULT_TOTAL_TIMEOUT_SECONDS = 15.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0
SLOW_REQUEST_THRESHOLD_MS = 3000


def _create_trace_config() -> aiohttp.TraceConfig:
    """Log every provider round trip, and warn on slow ones."""
    trace = aiohttp.TraceConfig()

    async def on_request_start(session, trace_config_ctx, params):
        trace_config_ctx.start = time.perf_counter()

    async def on_request_end(session, trace_config_ctx, params):
        duration_ms = int((time.perf_counter() - trace_config_ctx.start) * 1000)
        extra = {
            "event": "provider_request",
            "method": params.method,
            "host": params.url.host,
            "path": params.url.path,
            "status_code": params.response.status,
            "duration_ms": duration_ms,
        }
        if duration_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("Slow identity provider request", extra=extra)
        else:
            logger.debug("Identity provider request", extra=extra)

    async def on_request_exception(session, trace_config_ctx, params):
        logger.warning(
            "Identity provider request failed",
            extra={
                "event": "provider_request_failed",
                "method": params.method,
                "host": params.url.host,
                "path": params.url.path,
                "error_type": type(params.exception).__name__,
            },
        )

    trace.on_request_start.append(on_request_start)
    trace.on_request_end.append(on_request_end)
    trace.on_request_exception.append(on_request_exception)
    return trace


class AioHttpClient:
    session: aiohttp.ClientSession = None

    def start(self):
        # Everything goes to one provider tenant
        connector = aiohttp.TCPConnector(
            limit=50,
            limit_per_host=50,
            use_dns_cache=True,
            ttl_dns_cache=300,
        )
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(
                total=DEFAULT_TOTAL_TIMEOUT_SECONDS,
                connect=DEFAULT_CONNECT_TIMEOUT_SECONDS,
            ),
            connector=connector,
            headers={
                "Accept": "application/json",
                "User-Agent": f"orgauth/{get_settings().app_version}",
            },
            trace_configs=[_create_trace_config()],
        )

    async def stop(self):
        if self.session is not None:
            await self.session.close()
        self.session = None

    def __call__(self) -> aiohttp.ClientSession:
        assert self.session is not None
        return self.session


aiohttp_client = AioHttpClient()
