"""Shared plumbing for upstream provider adapters."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .fetcher import FetchResult, ResilientFetcher

logger = logging.getLogger(__name__)


class ProviderAdapter:
    """Translate one upstream schema into canonical records.

    Subclasses only describe *where* to look (paths and ordered field-alias
    lists); every request goes through the shared :class:`ResilientFetcher`.
    """

    name: str = "provider"

    def __init__(self, fetcher: ResilientFetcher, base_url: str) -> None:
        self._fetcher = fetcher
        self._base_url = str(base_url).rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _get(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        max_retries: int | None = None,
    ) -> FetchResult:
        return await self._fetcher.fetch_json(
            self._url(path), params=params, max_retries=max_retries
        )

    async def _get_data(
        self, path: str, *, params: Mapping[str, Any] | None = None
    ) -> Any:
        """Return the ``data`` member of a successful JSON answer, else ``None``."""

        result = await self._get(path, params=params)
        if not result.ok or not isinstance(result.json, dict):
            logger.debug("%s returned no data for %s", self.name, path)
            return None
        return result.json.get("data")
