"""HTTP client for the upstream solar/battery monitoring endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from solar_monitor.config.schema import UpstreamConfig
from solar_monitor.exceptions import UpstreamError
from solar_monitor.telemetry.payload import UpstreamSample, decode_payload

logger = logging.getLogger(__name__)


def retry_delay(config: UpstreamConfig, attempt: int) -> float:
    """Seconds to wait after failed ``attempt`` (1-based) before the next one."""
    base = config.retry_delay_seconds
    if config.backoff == "exponential":
        delay = base * (2 ** (attempt - 1))
    else:
        delay = base * attempt
    return min(delay, config.max_retry_delay_seconds)


class UpstreamClient:
    """Fetches and decodes the monitoring endpoint with bounded retries."""

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def url(self) -> str:
        return self._config.url

    async def fetch_payload(self) -> Any:
        """GET the endpoint once and return the decoded JSON body."""
        resp = await self._client.get(self._config.url)
        resp.raise_for_status()
        return resp.json()

    async def fetch_sample(self) -> UpstreamSample:
        """Fetch and decode one sample, retrying transient failures.

        Network errors, HTTP error statuses, undecodable bodies and
        structurally invalid payloads are all retried the same way.

        Raises:
            UpstreamError: After ``retry_attempts`` consecutive failures.
        """
        attempts = self._config.retry_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                payload = await self.fetch_payload()
                sample = decode_payload(payload)
            except (httpx.HTTPError, ValueError) as e:  # ValueError covers bad JSON and PayloadShapeError
                last_error = e
                logger.warning(
                    "Upstream fetch attempt %d/%d failed: %s",
                    attempt, attempts, e,
                )
                if attempt < attempts:
                    await asyncio.sleep(retry_delay(self._config, attempt))
                continue

            if attempt > 1:
                logger.info("Upstream fetch succeeded on attempt %d/%d", attempt, attempts)
            return sample

        raise UpstreamError(self._config.url, attempts) from last_error

    async def close(self) -> None:
        await self._client.aclose()
