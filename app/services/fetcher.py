"""Outbound JSON fetching with a total timeout and 429 backoff."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchResult:
    """Outcome of a single logical fetch (possibly several attempts)."""

    ok: bool
    status: int | None = None
    json: Any = None
    attempts: int = 0

    @classmethod
    def failed(cls, status: int | None = None, *, attempts: int = 0) -> "FetchResult":
        return cls(ok=False, status=status, json=None, attempts=attempts)


class ResilientFetcher:
    """The single network primitive shared by every provider adapter.

    ``fetch_json`` never raises: transport errors, timeouts, non-2xx answers
    and undecodable bodies all come back as ``FetchResult(ok=False)``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        timeout_seconds: float = 8.0,
        max_retries: int = 1,
        backoff_seconds: float = 0.5,
    ) -> None:
        self._client = http_client
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._backoff = backoff_seconds

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient
    ) -> "ResilientFetcher":
        return cls(
            http_client,
            timeout_seconds=settings.request_timeout_seconds,
            max_retries=settings.rate_limit_retries,
            backoff_seconds=settings.rate_limit_backoff_seconds,
        )

    async def fetch_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> FetchResult:
        """GET ``url`` and decode its JSON body.

        A 429 answer waits the fixed backoff interval and tries again, up to
        ``max_retries`` extra attempts; the last 429 is returned as a failure.
        """

        resolved_timeout = self._timeout if timeout is None else timeout
        retries_left = self._max_retries if max_retries is None else max(0, max_retries)
        attempts = 0

        while True:
            attempts += 1
            try:
                response = await asyncio.wait_for(
                    self._client.get(url, params=params, timeout=resolved_timeout),
                    timeout=resolved_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Request to %s timed out after %.1fs", url, resolved_timeout)
                return FetchResult.failed(attempts=attempts)
            except httpx.HTTPError as exc:
                logger.warning("Request to %s failed: %s", url, exc)
                return FetchResult.failed(attempts=attempts)

            if response.status_code == 429 and retries_left > 0:
                retries_left -= 1
                logger.info(
                    "Rate limited by %s, retrying in %.1fs (%s retries left)",
                    url,
                    self._backoff,
                    retries_left,
                )
                await asyncio.sleep(self._backoff)
                continue
            break

        if not response.is_success:
            logger.debug("Request to %s answered %s", url, response.status_code)
            return FetchResult.failed(response.status_code, attempts=attempts)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON response from %s", url)
            return FetchResult.failed(response.status_code, attempts=attempts)

        return FetchResult(
            ok=True, status=response.status_code, json=payload, attempts=attempts
        )
