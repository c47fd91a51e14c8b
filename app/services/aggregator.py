"""High level orchestration of the anime catalog lookups."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..cache import TTLCache, make_cache_key
from ..config import Settings
from ..models import (
    AnimeSummary,
    DiscoverPage,
    EpisodePage,
    GenreList,
    Pagination,
    StreamLinks,
    SummaryList,
    TitleRecord,
)
from ..utils import slugify
from .consumet import ConsumetAdapter
from .episodes import paginate_episodes, reconcile_episodes
from .jikan import JikanAdapter
from .season_chain import SeasonChainResolver

logger = logging.getLogger(__name__)

TRENDING_LIMIT = 24
SEARCH_LIMIT = 20
DISCOVER_LIMIT = 24


class AnimeAggregator:
    """The single entry point the route layer talks to.

    Every operation checks its cache, falls through to the provider adapters on
    a miss and stores the canonical result. Missing data yields a well-formed
    empty envelope (or ``None`` for :meth:`info`); only unexpected failures
    raise.
    """

    def __init__(
        self,
        settings: Settings,
        jikan: JikanAdapter,
        consumet: ConsumetAdapter,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings
        self._jikan = jikan
        self._consumet = consumet
        cache_kwargs: dict[str, Any] = {"clock": clock} if clock is not None else {}
        self.metadata_cache: TTLCache[Any] = TTLCache(
            settings.metadata_cache_seconds, name="metadata", **cache_kwargs
        )
        self.genre_cache: TTLCache[GenreList] = TTLCache(
            settings.metadata_cache_seconds, name="genres", **cache_kwargs
        )
        self.episode_cache: TTLCache[EpisodePage] = TTLCache(
            settings.episode_cache_seconds, name="episodes", **cache_kwargs
        )
        self._resolver = SeasonChainResolver(
            self._jikan.fetch_full, max_depth=settings.season_chain_max_depth
        )

    @property
    def streaming_providers(self) -> tuple[str, ...]:
        return self._settings.streaming_providers

    async def trending(self) -> SummaryList:
        key = make_cache_key("trending", provider=self._jikan.name, limit=TRENDING_LIMIT)
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached
        payload = SummaryList(results=await self._jikan.top_anime(limit=TRENDING_LIMIT))
        if payload.results:
            self.metadata_cache.set(key, payload)
        return payload

    async def search(self, query: str | None) -> SummaryList:
        text = (query or "").strip()
        if not text:
            return SummaryList()
        key = make_cache_key("search", provider=self._jikan.name, q=text)
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached
        payload = SummaryList(results=await self._jikan.search(text, limit=SEARCH_LIMIT))
        if payload.results:
            self.metadata_cache.set(key, payload)
        return payload

    async def genres(self) -> GenreList:
        key = make_cache_key("genres", provider=self._jikan.name)
        cached = self.genre_cache.get(key)
        if cached is not None:
            return cached
        payload = GenreList(genres=await self._jikan.genres())
        if payload.genres:
            self.genre_cache.set(key, payload)
        return payload

    async def discover(
        self,
        *,
        q: str | None = None,
        genre: str | None = None,
        page: int = 1,
        order_by: str | None = "popularity",
        sort: str | None = "desc",
    ) -> DiscoverPage:
        page = max(1, page)
        query = (q or "").strip()
        genre_name = (genre or "").strip()
        key = make_cache_key(
            "discover",
            provider=self._jikan.name,
            q=query,
            genre=genre_name.lower(),
            page=page,
            order_by=order_by,
            sort=sort,
        )
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached

        params: dict[str, Any] = {
            "page": page,
            "sfw": "true",
            "limit": DISCOVER_LIMIT,
        }
        if query:
            params["q"] = query
        if order_by:
            params["order_by"] = order_by
        if sort:
            params["sort"] = sort
        cacheable = True
        if genre_name:
            known = (await self.genres()).genres
            wanted = [
                entry.id for entry in known if entry.name.lower() == genre_name.lower()
            ]
            if wanted:
                params["genres"] = ",".join(str(genre_id) for genre_id in wanted)
            elif not known:
                # Genre list unavailable; serve unfiltered but do not pin it.
                logger.warning(
                    "Genre list unavailable; discover for %r served unfiltered",
                    genre_name,
                )
                cacheable = False
            else:
                logger.info("Unknown genre %r ignored for discover", genre_name)

        results, pagination = await self._jikan.list_anime(params, page=page)
        payload = DiscoverPage(results=results, pagination=pagination)
        if results and cacheable:
            self.metadata_cache.set(key, payload)
        return payload

    async def new_releases(self) -> SummaryList:
        key = make_cache_key("new_releases", provider=self._jikan.name)
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached
        payload = SummaryList(results=await self._jikan.seasons_now())
        if payload.results:
            self.metadata_cache.set(key, payload)
        return payload

    async def info(self, raw_id: str | int) -> AnimeSummary | None:
        """Resolve any incoming identifier to a summary with its season chain.

        Numeric ids are tried as MyAnimeList ids first; anything else (or a
        numeric id the metadata source does not know) is searched by title and
        finally looked up as a slug on each streaming provider. ``None`` means
        no namespace matched.
        """

        identifier = str(raw_id or "").strip()
        if not identifier:
            return None
        key = make_cache_key("info", provider=self._jikan.name, id=identifier)
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached

        summary = await self._resolve_info(identifier)
        if summary is not None:
            self.metadata_cache.set(key, summary)
        return summary

    async def _resolve_info(self, identifier: str) -> AnimeSummary | None:
        record: TitleRecord | None = None
        if identifier.isdigit():
            record = await self._jikan.fetch_full(identifier)

        if record is None:
            mal_id = await self._jikan.search_first_id(identifier.replace("-", " "))
            if mal_id is not None:
                record = await self._jikan.fetch_full(mal_id)

        if record is not None:
            return await self._with_seasons(record)

        slug = slugify(identifier)
        for provider in self.streaming_providers:
            info = await self._consumet.info(provider, slug)
            if info is None:
                continue
            cross_reference = info.cross_reference_id
            if cross_reference is not None:
                record = await self._jikan.fetch_full(cross_reference)
                if record is not None:
                    return await self._with_seasons(record)
            summary = info.to_summary()
            if summary is not None:
                return summary

        logger.info("No provider could resolve anime id %r", identifier)
        return None

    async def _with_seasons(self, record: TitleRecord) -> AnimeSummary:
        if record.summary.is_movie():
            seasons = []
        else:
            seasons = await self._resolver.resolve(record)
        return record.summary.model_copy(update={"seasons": seasons})

    async def episodes(self, anime_id: str | int, *, page: int = 1) -> EpisodePage:
        """Return one page of reconciled episodes, falling back across providers."""

        page = max(1, page)
        key = make_cache_key("episodes", provider=self._jikan.name, id=str(anime_id), page=page)
        cached = self.episode_cache.get(key)
        if cached is not None:
            logger.debug("Episode cache hit for %s page %s", anime_id, page)
            return cached

        preference = self._settings.episode_provider_order
        batch = await self._jikan.episodes(anime_id, page=page)
        if batch.episodes:
            episodes = reconcile_episodes([batch.episodes], preference)
            if episodes:
                payload = EpisodePage(
                    episodes=episodes,
                    pagination=batch.pagination or Pagination(page=page),
                )
                self.episode_cache.set(key, payload)
                return payload

        payload = await self._fallback_episodes(anime_id, page=page)
        self.episode_cache.set(key, payload)
        return payload

    async def _fallback_episodes(self, anime_id: str | int, *, page: int) -> EpisodePage:
        per_page = self._settings.episodes_page_size
        title = await self._jikan.fetch_title(anime_id)
        if title:
            slug = slugify(title)
            for provider in self.streaming_providers:
                provider_list = await self._consumet.episodes(
                    provider, slug, anime_id=anime_id
                )
                episodes = reconcile_episodes(
                    [provider_list], self._settings.episode_provider_order
                )
                if episodes:
                    logger.info(
                        "Using %s episodes for %s (%s found)", provider, anime_id, len(episodes)
                    )
                    window, pagination = paginate_episodes(
                        episodes, page=page, per_page=per_page
                    )
                    return EpisodePage(episodes=window, pagination=pagination)

        window, pagination = paginate_episodes([], page=page, per_page=per_page)
        return EpisodePage(episodes=window, pagination=pagination)

    async def streaming(self, anime_id: str | int) -> StreamLinks:
        key = make_cache_key("streaming", provider=self._jikan.name, id=str(anime_id))
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached

        title = await self._jikan.fetch_title(anime_id)
        if not title:
            return StreamLinks()
        episode_id = f"{slugify(title)}-episode-1"
        per_provider = await asyncio.gather(
            *(
                self._consumet.watch_links(provider, episode_id)
                for provider in self.streaming_providers
            )
        )
        links = [link for provider_links in per_provider for link in provider_links]
        if not links:
            links = await self._jikan.streaming(anime_id)

        payload = StreamLinks(links=links)
        if payload.links:
            self.metadata_cache.set(key, payload)
        return payload
