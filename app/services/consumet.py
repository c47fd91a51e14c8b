"""Adapter for Consumet-style streaming-link providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..models import AnimeSummary, StreamLink
from ..utils import coerce_int, first_present, normalize_base_title
from .base import ProviderAdapter
from .episodes import ProviderEpisodes, RawEpisode

logger = logging.getLogger(__name__)

EPISODE_LIST_FIELDS = ("episodes", "data.episodes", "results")
EPISODE_NUMBER_FIELDS = ("number", "episode", "ep", "index")
EPISODE_TITLE_FIELDS = ("title", "name", "episodeTitle", "title_english")
EPISODE_DATE_FIELDS = ("air_date", "aired", "date")
SOURCE_LIST_FIELDS = ("sources", "mirrors", "streaming", "data")
# ``id`` is usually the provider slug, so MyAnimeList fields are probed first.
CROSS_REFERENCE_FIELDS = ("mal_id", "data.mal_id", "id", "data.id")
INFO_TITLE_FIELDS = ("title", "data.title", "name")
INFO_IMAGE_FIELDS = ("image", "poster", "data.image")
INFO_SYNOPSIS_FIELDS = ("description", "data.description")


@dataclass(slots=True)
class ProviderInfo:
    """What a streaming provider knows about a title looked up by slug."""

    provider: str
    payload: dict[str, Any]

    @property
    def cross_reference_id(self) -> int | None:
        """Return the first MyAnimeList-compatible numeric id, if any."""

        for path in CROSS_REFERENCE_FIELDS:
            value = first_present(self.payload, (path,))
            number = coerce_int(value)
            if number > 0 and str(value).strip().isdigit():
                return number
        return None

    def to_summary(self) -> AnimeSummary | None:
        title = first_present(self.payload, INFO_TITLE_FIELDS, truthy=True)
        if not title:
            return None
        genres = self.payload.get("genres")
        year = self.payload.get("year")
        return AnimeSummary(
            id=coerce_int(self.payload.get("mal_id")) or None,
            title=normalize_base_title(title),
            image=first_present(self.payload, INFO_IMAGE_FIELDS, truthy=True),
            type=self.payload.get("type") or None,
            year=coerce_int(year) or None,
            genres=[str(genre) for genre in genres if genre]
            if isinstance(genres, list)
            else [],
            synopsis=str(first_present(self.payload, INFO_SYNOPSIS_FIELDS, truthy=True) or ""),
        )


class ConsumetAdapter(ProviderAdapter):
    """One adapter serves every provider exposed under ``/anime/{provider}``."""

    name = "consumet"

    async def info(self, provider: str, slug: str) -> ProviderInfo | None:
        if not slug:
            return None
        result = await self._get(f"/anime/{provider}/info/{slug}", max_retries=0)
        if not result.ok or not isinstance(result.json, dict):
            logger.debug("%s has no info for %s", provider, slug)
            return None
        return ProviderInfo(provider=provider, payload=result.json)

    async def episodes(
        self, provider: str, slug: str, *, anime_id: int | str
    ) -> ProviderEpisodes:
        info = await self.info(provider, slug)
        if info is None:
            return ProviderEpisodes(provider=provider)
        entries = first_present(info.payload, EPISODE_LIST_FIELDS)
        if not isinstance(entries, list):
            return ProviderEpisodes(provider=provider)

        raw: list[RawEpisode] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            number = first_present(entry, EPISODE_NUMBER_FIELDS)
            episode_id = entry.get("id")
            if episode_id is None:
                episode_id = f"{anime_id}-{number if number is not None else '0'}"
            raw.append(
                RawEpisode(
                    id=str(episode_id),
                    number=number,
                    title=first_present(entry, EPISODE_TITLE_FIELDS, truthy=True),
                    air_date=first_present(entry, EPISODE_DATE_FIELDS),
                )
            )
        return ProviderEpisodes(provider=provider, episodes=raw)

    async def watch_links(self, provider: str, episode_id: str) -> list[StreamLink]:
        result = await self._get(f"/anime/{provider}/watch/{episode_id}")
        if not result.ok or not isinstance(result.json, dict):
            return []
        payload = result.json
        sources = first_present(payload, SOURCE_LIST_FIELDS)
        links: list[StreamLink] = []
        if isinstance(sources, list):
            for source in sources:
                if isinstance(source, dict) and source.get("url"):
                    links.append(StreamLink(name=provider, url=str(source["url"])))
                elif isinstance(source, str) and source:
                    links.append(StreamLink(name=provider, url=source))
        elif payload.get("url"):
            links.append(StreamLink(name=provider, url=str(payload["url"])))
        return links
