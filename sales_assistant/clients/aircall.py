"""Aircall REST API client using basic auth."""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Any, Literal

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from sales_assistant.core.settings import AircallConfig

logger = structlog.get_logger()

CallPeriod = Literal["today", "week", "month"]

PER_PAGE = 50
MAX_PAGES = 200
THROTTLE_THRESHOLD = 2


class AircallError(RuntimeError):
    """Raised when Aircall rejects a request or is misconfigured."""


class AircallRateLimitedError(AircallError):
    """Raised on HTTP 429 so the request can be retried."""


def period_start(period: CallPeriod, now: datetime) -> datetime:
    """Start of the current day, Monday-based week or month."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        return midnight
    if period == "week":
        return midnight - timedelta(days=midnight.weekday())
    return midnight.replace(day=1)


class AircallClient:
    """Async Aircall client with rate-limit awareness.

    Aircall allows 60 requests per minute; remaining quota is tracked from
    response headers and requests pause when it is nearly spent.
    """

    def __init__(
        self,
        config: AircallConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._remaining = 60
        self._reset_at = 0.0

    def _auth(self) -> httpx.BasicAuth:
        token = self._config.api_token.get_secret_value()
        if not self._config.api_id or not token:
            raise AircallError("Missing AIRCALL_API_ID or AIRCALL_API_TOKEN")
        return httpx.BasicAuth(self._config.api_id, token)

    async def _throttle(self) -> None:
        now = time.time()
        if self._remaining <= THROTTLE_THRESHOLD and now < self._reset_at:
            wait_seconds = self._reset_at - now + 0.5
            logger.info("Aircall rate limit reached, waiting", seconds=round(wait_seconds, 1))
            await asyncio.sleep(wait_seconds)

    def _track_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get("x-aircallapi-remaining")
        reset = response.headers.get("x-aircallapi-reset")
        if remaining is not None:
            self._remaining = int(remaining)
        if reset is not None:
            self._reset_at = float(reset)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        auth = self._auth()
        url = path if path.startswith("http") else f"{self._config.base_url}{path}"

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(AircallRateLimitedError),
            wait=self._retry_wait,
            stop=stop_after_attempt(self._max_attempts),
            reraise=True,
        ):
            with attempt:
                await self._throttle()
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    response = await client.get(url, params=params, auth=auth)
                self._track_rate_limit(response)

                if response.status_code == 429:
                    logger.warning(
                        "Aircall rate limited",
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise AircallRateLimitedError("Aircall rate limit exceeded")
                if response.status_code >= 400:
                    logger.error(
                        "Aircall request failed",
                        path=path,
                        status=response.status_code,
                        body=response.text[:500],
                    )
                    raise AircallError(f"Aircall API error: {response.status_code}")
                return response.json()

        raise AircallError("Aircall request was not attempted")

    async def list_calls(
        self,
        start: int | None = None,
        end: int | None = None,
        page: int = 1,
        per_page: int = PER_PAGE,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Return one page of calls and its pagination meta."""
        params: dict[str, Any] = {"order": "desc", "per_page": per_page, "page": page}
        if start is not None:
            params["from"] = start
        if end is not None:
            params["to"] = end
        data = await self._get("/calls", params=params)
        return data.get("calls", []), data.get("meta", {})

    async def fetch_all_calls_in_range(
        self, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Fetch every call between two instants, following pagination."""
        calls: list[dict[str, Any]] = []
        for page in range(1, MAX_PAGES + 1):
            batch, meta = await self.list_calls(
                start=int(start.timestamp()),
                end=int(end.timestamp()),
                page=page,
            )
            calls.extend(batch)
            if not meta.get("next_page_link"):
                break
        return calls

    async def get_calls_for_period(
        self, period: CallPeriod, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        now = now or datetime.now().astimezone()
        return await self.fetch_all_calls_in_range(period_start(period, now), now)

    async def list_users(self) -> list[dict[str, Any]]:
        data = await self._get("/users", params={"per_page": PER_PAGE})
        return list(data.get("users", []))
