"""Single HTTP calls against the ledger API, normalized and timed."""

import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from ledger_stress.config import Settings
from ledger_stress.errors import TransportError

logger = structlog.get_logger()

_JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class RequestResult:
    status: int
    body: Any
    duration_ms: float


def build_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create the shared client: no retries, pooled connections, one timeout."""
    if transport is None:
        transport = httpx.AsyncHTTPTransport(
            retries=0,
            limits=httpx.Limits(
                max_connections=settings.max_connections,
                max_keepalive_connections=settings.max_connections // 2,
            ),
        )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(settings.request_timeout_seconds),
    )


class RequestExecutor:
    """Issues requests and returns status, decoded body and latency.

    HTTP error statuses are returned like any other response. Only failures to
    get a response at all raise, as ``TransportError``.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def execute(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> RequestResult:
        request_headers = dict(_JSON_HEADERS) if body is not None else {}
        if headers:
            request_headers.update(headers)

        t0 = time.perf_counter()
        try:
            resp = await self._client.request(
                method,
                url,
                json=body,
                headers=request_headers,
            )
        except httpx.TransportError as exc:
            logger.debug("request_transport_error", method=method, url=url, error=str(exc))
            raise TransportError(method, url, type(exc).__name__) from exc
        duration_ms = (time.perf_counter() - t0) * 1000.0

        try:
            parsed = resp.json()
        except ValueError:
            parsed = None
        return RequestResult(status=resp.status_code, body=parsed, duration_ms=duration_ms)

    async def get(self, url: str) -> RequestResult:
        return await self.execute("GET", url)

    async def post_json(self, url: str, body: Any) -> RequestResult:
        return await self.execute("POST", url, body)
