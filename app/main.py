"""Entry point for the FastAPI-powered anime catalog API."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import settings
from .services.aggregator import AnimeAggregator
from .services.consumet import ConsumetAdapter
from .services.fetcher import ResilientFetcher
from .services.jikan import JikanAdapter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=5.0),
            headers={"User-Agent": f"{settings.app_name} (animeverse)"},
            follow_redirects=True,
        )
    )
    fetcher = ResilientFetcher.from_settings(settings, http_client)
    jikan = JikanAdapter(fetcher, str(settings.jikan_api_url))
    consumet = ConsumetAdapter(fetcher, str(settings.consumet_api_url))
    fastapi_app.state.aggregator = AnimeAggregator(settings, jikan, consumet)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Normalized anime catalog aggregated from several providers",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_aggregator(app: FastAPI) -> AnimeAggregator:
    aggregator = getattr(app.state, "aggregator", None)
    if not isinstance(aggregator, AnimeAggregator):
        raise RuntimeError("Anime aggregator not initialised")
    return aggregator


def _serialize(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _coerce_page(value: str | None) -> int:
    try:
        return max(1, int(value or 1))
    except (TypeError, ValueError):
        return 1


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error while serving %s", request.url.path)
        return JSONResponse({"error": str(exc) or "Internal error"}, status_code=500)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/anime/trending")
    async def trending() -> dict[str, Any]:
        return _serialize(await get_aggregator(fastapi_app).trending())

    @fastapi_app.get("/api/anime/search")
    async def search(q: str | None = None) -> dict[str, Any]:
        return _serialize(await get_aggregator(fastapi_app).search(q))

    @fastapi_app.get("/api/anime/discover")
    async def discover(
        q: str | None = None,
        genre: str | None = None,
        page: str | None = None,
        order_by: str | None = "popularity",
        sort: str | None = "desc",
    ) -> dict[str, Any]:
        payload = await get_aggregator(fastapi_app).discover(
            q=q,
            genre=genre,
            page=_coerce_page(page),
            order_by=order_by,
            sort=sort,
        )
        return _serialize(payload)

    @fastapi_app.get("/api/anime/genres")
    async def genres() -> dict[str, Any]:
        return _serialize(await get_aggregator(fastapi_app).genres())

    @fastapi_app.get("/api/anime/info/{anime_id}")
    async def info(anime_id: str) -> JSONResponse:
        summary = await get_aggregator(fastapi_app).info(anime_id)
        if summary is None:
            return JSONResponse({"error": "Not found"}, status_code=404)
        return JSONResponse(_serialize(summary))

    @fastapi_app.get("/api/anime/episodes/{anime_id}")
    async def episodes(anime_id: str, page: str | None = None) -> dict[str, Any]:
        payload = await get_aggregator(fastapi_app).episodes(
            anime_id, page=_coerce_page(page)
        )
        return _serialize(payload)

    @fastapi_app.get("/api/anime/streams/{anime_id}")
    async def streams(anime_id: str) -> dict[str, Any]:
        return _serialize(await get_aggregator(fastapi_app).streaming(anime_id))

    @fastapi_app.get("/api/anime/new")
    async def new_releases() -> dict[str, Any]:
        return _serialize(await get_aggregator(fastapi_app).new_releases())


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
