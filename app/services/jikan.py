"""Adapter for the Jikan (MyAnimeList) REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from ..models import (
    AnimeSummary,
    Genre,
    Pagination,
    PaginationItems,
    RelationEdge,
    RelationNode,
    StreamLink,
    TitleRecord,
)
from ..utils import (
    coerce_int,
    first_present,
    has_season_marker,
    normalize_base_title,
)
from .base import ProviderAdapter
from .episodes import ProviderEpisodes, RawEpisode

logger = logging.getLogger(__name__)

TITLE_FIELDS = ("title", "title_english", "title_japanese")
EPISODE_TITLE_FIELDS = ("title", "title_romanji", "title_japanese")
IMAGE_FIELDS = ("large_image_url", "image_url", "small_image_url")
RELATION_TYPES = {"prequel": "PREQUEL", "sequel": "SEQUEL"}
EPISODES_PER_PAGE = 100


@dataclass(slots=True)
class EpisodeBatch:
    """One upstream page of episodes and the pagination Jikan reported."""

    episodes: ProviderEpisodes
    pagination: Pagination | None


def raw_title(data: Mapping[str, Any]) -> str:
    return str(first_present(data, TITLE_FIELDS, truthy=True) or "")


def map_anime(data: Mapping[str, Any], *, current_year: int | None = None) -> AnimeSummary:
    """Map a Jikan anime object onto :class:`AnimeSummary`."""

    image_set = first_present(data, ("images.jpg", "images.webp"), truthy=True) or {}
    original_title = raw_title(data)
    year = data.get("year")
    if year is None:
        year = first_present(data, ("aired.prop.from.year",))
    airing = data.get("airing") is True or data.get("status") == "Currently Airing"
    this_year = current_year if current_year is not None else date.today().year
    score = data.get("score")
    genres = data.get("genres")

    return AnimeSummary(
        id=coerce_int(data.get("mal_id"), default=0) or None,
        title=normalize_base_title(original_title),
        image=first_present(image_set, IMAGE_FIELDS, truthy=True),
        type=data.get("type") or None,
        year=year if isinstance(year, int) else None,
        rating=score if isinstance(score, (int, float)) and not isinstance(score, bool) else None,
        sub_dub="SUB",
        genres=[
            str(genre.get("name"))
            for genre in genres
            if isinstance(genre, dict) and genre.get("name")
        ]
        if isinstance(genres, list)
        else [],
        synopsis=data.get("synopsis") or "",
        is_new_season=has_season_marker(original_title) and (airing or year == this_year),
    )


def extract_relations(data: Mapping[str, Any]) -> list[RelationEdge]:
    """Return prequel/sequel edges in upstream order, skipping non-anime entries."""

    edges: list[RelationEdge] = []
    relations = data.get("relations")
    if not isinstance(relations, list):
        return edges
    for relation in relations:
        if not isinstance(relation, dict):
            continue
        relation_type = RELATION_TYPES.get(str(relation.get("relation") or "").lower())
        entries = relation.get("entry")
        if relation_type is None or not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if str(entry.get("type") or "").lower() == "manga":
                continue
            node_id = coerce_int(entry.get("mal_id"))
            if node_id <= 0:
                continue
            edges.append(
                RelationEdge(
                    relation_type=relation_type,
                    node=RelationNode(
                        id=node_id,
                        # Jikan relation entries carry "anime"/"manga" as type, not a
                        # broadcast format, so the TV tie-break only applies to
                        # sources that send a real format.
                        format=first_present(entry, ("format", "type")),
                        title=str(first_present(entry, ("name", "title")) or ""),
                    ),
                )
            )
    return edges


def map_pagination(raw: Any, *, page: int) -> Pagination | None:
    if not isinstance(raw, dict):
        return None
    items = raw.get("items")
    last_page = raw.get("last_visible_page")
    return Pagination(
        page=coerce_int(raw.get("current_page"), default=page) or page,
        has_next_page=bool(raw.get("has_next_page")),
        last_visible_page=last_page if isinstance(last_page, int) else None,
        items=PaginationItems(
            count=coerce_int(items.get("count")),
            total=coerce_int(items.get("total")),
            per_page=coerce_int(items.get("per_page")),
        )
        if isinstance(items, dict)
        else None,
    )


class JikanAdapter(ProviderAdapter):
    """Primary metadata source and primary episode source."""

    name = "jikan"

    async def top_anime(self, *, limit: int = 24) -> list[AnimeSummary]:
        data = await self._get_data("/top/anime", params={"limit": limit})
        return self._map_list(data)

    async def search(self, query: str, *, limit: int = 20) -> list[AnimeSummary]:
        data = await self._get_data(
            "/anime", params={"q": query, "limit": limit, "sfw": "true"}
        )
        return self._map_list(data)

    async def search_first_id(self, query: str) -> int | None:
        """Return the MyAnimeList id of the best title-search hit."""

        data = await self._get_data("/anime", params={"q": query, "limit": 5})
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        return coerce_int(data[0].get("mal_id")) or None

    async def list_anime(
        self, params: Mapping[str, Any], *, page: int
    ) -> tuple[list[AnimeSummary], Pagination]:
        result = await self._get("/anime", params=params)
        payload = result.json if result.ok and isinstance(result.json, dict) else {}
        pagination = map_pagination(payload.get("pagination"), page=page) or Pagination(
            page=page
        )
        pagination.page = page
        return self._map_list(payload.get("data")), pagination

    async def seasons_now(self) -> list[AnimeSummary]:
        return self._map_list(await self._get_data("/seasons/now"))

    async def genres(self) -> list[Genre]:
        data = await self._get_data("/genres/anime")
        if not isinstance(data, list):
            return []
        return [
            Genre(id=coerce_int(entry.get("mal_id")), name=str(entry.get("name")))
            for entry in data
            if isinstance(entry, dict) and entry.get("name") and entry.get("mal_id")
        ]

    async def fetch_full(self, mal_id: int | str) -> TitleRecord | None:
        """Return the full record, including relation edges, for one title."""

        data = await self._get_data(f"/anime/{mal_id}/full")
        if not isinstance(data, dict):
            return None
        return TitleRecord(
            summary=map_anime(data),
            raw_title=raw_title(data),
            relations=extract_relations(data),
        )

    async def fetch_title(self, mal_id: int | str) -> str | None:
        """Return the raw (unnormalized) title, used to derive provider slugs."""

        data = await self._get_data(f"/anime/{mal_id}")
        if not isinstance(data, dict):
            return None
        return raw_title(data) or None

    async def episodes(self, mal_id: int | str, *, page: int = 1) -> EpisodeBatch:
        result = await self._get(f"/anime/{mal_id}/episodes", params={"page": page})
        payload = result.json if result.ok and isinstance(result.json, dict) else {}
        entries = payload.get("data")
        offset = (page - 1) * EPISODES_PER_PAGE
        raw: list[RawEpisode] = []
        if isinstance(entries, list):
            for index, entry in enumerate(entries):
                if not isinstance(entry, dict):
                    continue
                number = coerce_int(entry.get("episode"))
                if number <= 0:
                    number = offset + index + 1
                episode_id = entry.get("mal_id")
                raw.append(
                    RawEpisode(
                        id=str(episode_id if episode_id is not None else f"{mal_id}-{number}"),
                        number=number,
                        title=first_present(entry, EPISODE_TITLE_FIELDS, truthy=True),
                        air_date=entry.get("aired"),
                    )
                )
        return EpisodeBatch(
            episodes=ProviderEpisodes(provider=self.name, episodes=raw),
            pagination=map_pagination(payload.get("pagination"), page=page),
        )

    async def streaming(self, mal_id: int | str) -> list[StreamLink]:
        data = await self._get_data(f"/anime/{mal_id}/streaming")
        if not isinstance(data, list):
            return []
        return [
            StreamLink(name=str(entry.get("name") or self.name), url=str(entry["url"]))
            for entry in data
            if isinstance(entry, dict) and entry.get("url")
        ]

    @staticmethod
    def _map_list(data: Any) -> list[AnimeSummary]:
        if not isinstance(data, list):
            return []
        return [map_anime(entry) for entry in data if isinstance(entry, dict)]
