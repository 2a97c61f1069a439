"""Resilient HTTP Client — wraps httpx.AsyncClient with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): backoff, respects Retry-After header
    - Transient errors (5xx, connection, timeout): bounded retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to ExternalServiceError (core/errors.py)
"""

import asyncio
import logging
import random

import httpx

from papermark.core.errors import ErrorContext, ExternalServiceError

logger = logging.getLogger(__name__)


class ResilientHTTPClient:
    """POSTs JSON to third-party endpoints with retry logic and error mapping."""

    def __init__(
        self,
        service: str,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.service = service
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def post_json(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str] | None = None,
        context: ErrorContext | None = None,
    ) -> httpx.Response:
        return await self._post(url, {"json": payload}, headers, context)

    async def post_raw_json(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str] | None = None,
        context: ErrorContext | None = None,
    ) -> httpx.Response:
        """POST already-serialized JSON; the request body is exactly `body`."""
        headers = {"Content-Type": "application/json", **(headers or {})}
        return await self._post(url, {"content": body}, headers, context)

    async def _post(
        self,
        url: str,
        request_body: dict,
        headers: dict[str, str] | None,
        context: ErrorContext | None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport,
        ) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(url, headers=headers, **request_body)
                except (httpx.TransportError, httpx.TimeoutException) as e:
                    await self._handle_transient(f"{type(e).__name__}: {e}", attempt, context)
                    continue

                if response.status_code == 429:
                    await self._handle_rate_limit(response, attempt, context)
                    continue
                if response.status_code >= 500:
                    await self._handle_transient(
                        f"HTTP {response.status_code}", attempt, context,
                    )
                    continue
                if response.status_code >= 400:
                    raise ExternalServiceError(
                        f"HTTP {response.status_code}", self.service, context=context,
                    )
                logger.info(
                    f"{self.service} call succeeded",
                    extra={"attempt": attempt + 1, "status_code": response.status_code},
                )
                return response
        raise ExternalServiceError("retries exhausted", self.service, context=context)

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext | None,
    ) -> None:
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise ExternalServiceError(
                "Rate limit exceeded after retries", self.service,
                retry_after_ms=retry_after_ms, context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"{self.service} rate limited, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient(
        self, reason: str, attempt: int, context: ErrorContext | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise ExternalServiceError(
                f"Transient failure after {self.max_retries} retries: {reason}",
                self.service, context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"{self.service} transient error, retry after {delay}ms: {reason}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds (seconds form only)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None
