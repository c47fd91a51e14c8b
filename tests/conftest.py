"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from app.config import Settings  # noqa: E402
from app.services.aggregator import AnimeAggregator  # noqa: E402
from app.services.consumet import ConsumetAdapter  # noqa: E402
from app.services.fetcher import ResilientFetcher  # noqa: E402
from app.services.jikan import JikanAdapter  # noqa: E402

JIKAN = "https://api.jikan.moe/v4"
CONSUMET = "https://api.consumet.org"


class UpstreamStub:
    """Route table backing an ``httpx.MockTransport``.

    Each route holds a queue of responses; the last one is repeated once the
    queue is drained. Plain dicts/lists are served as 200 JSON bodies and
    unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, *responses: Any) -> None:
        self.routes[url] = list(responses)

    def calls(self, url: str) -> int:
        return sum(1 for request in self.requests if _route_of(request) == url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(_route_of(request))
        if not queue:
            return httpx.Response(404, json={"error": "not found"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def _route_of(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {"RATE_LIMIT_BACKOFF": 0}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def make_aggregator() -> Callable[..., AnimeAggregator]:
    """Build an aggregator wired to ``http_client`` with test settings."""

    def factory(
        http_client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] | None = None,
        **overrides: Any,
    ) -> AnimeAggregator:
        settings = build_settings(**overrides)
        fetcher = ResilientFetcher.from_settings(settings, http_client)
        return AnimeAggregator(
            settings,
            JikanAdapter(fetcher, str(settings.jikan_api_url)),
            ConsumetAdapter(fetcher, str(settings.consumet_api_url)),
            clock=clock,
        )

    return factory
