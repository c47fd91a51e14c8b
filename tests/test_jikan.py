"""Tests for the Jikan adapter mappings."""

from __future__ import annotations

import httpx
import pytest

from app.services.fetcher import ResilientFetcher
from app.services.jikan import JikanAdapter, extract_relations, map_anime, map_pagination
from app.services.season_chain import pick_relation

JIKAN = "https://api.jikan.moe/v4"


def _anime(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "mal_id": 40028,
        "title": "Attack on Titan Final Season",
        "title_english": "Attack on Titan Final Season",
        "images": {"jpg": {"image_url": "https://cdn.example.com/s.jpg", "large_image_url": "https://cdn.example.com/l.jpg"}},
        "type": "TV",
        "year": 2020,
        "score": 8.8,
        "airing": False,
        "genres": [{"mal_id": 1, "name": "Action"}, {"mal_id": 8, "name": "Drama"}],
        "synopsis": "The war for Paradis.",
    }
    payload.update(overrides)
    return payload


def test_map_anime_normalizes_title_and_fields() -> None:
    summary = map_anime(_anime(), current_year=2020)

    assert summary.id == 40028
    assert summary.title == "Attack on Titan"
    assert summary.image == "https://cdn.example.com/l.jpg"
    assert summary.rating == 8.8
    assert summary.sub_dub == "SUB"
    assert summary.genres == ["Action", "Drama"]
    assert summary.is_new_season is True


def test_map_anime_defaults_missing_fields() -> None:
    summary = map_anime(
        {"mal_id": 5, "title": "Cowboy Bebop", "score": None, "aired": {"prop": {"from": {"year": 1998}}}},
        current_year=2026,
    )

    assert summary.title == "Cowboy Bebop"
    assert summary.year == 1998
    assert summary.rating is None
    assert summary.image is None
    assert summary.genres == []
    assert summary.synopsis == ""
    assert summary.is_new_season is False


def test_map_anime_serializes_camel_case_aliases() -> None:
    payload = map_anime(_anime(airing=True, title="Dr. Stone Season 4")).model_dump(by_alias=True)

    assert payload["title"] == "Dr. Stone"
    assert payload["subDub"] == "SUB"
    assert payload["isNewSeason"] is True
    assert payload["seasons"] == []


def test_extract_relations_keeps_prequels_and_sequels() -> None:
    edges = extract_relations(
        {
            "relations": [
                {"relation": "Prequel", "entry": [{"mal_id": 1, "type": "anime", "name": "Show"}]},
                {"relation": "Adaptation", "entry": [{"mal_id": 2, "type": "manga", "name": "Show"}]},
                {
                    "relation": "Sequel",
                    "entry": [
                        {"mal_id": 3, "type": "manga", "name": "Side story"},
                        {"mal_id": 4, "type": "anime", "name": "Show 2"},
                    ],
                },
            ]
        }
    )

    assert [(edge.relation_type, edge.node.id, edge.node.title) for edge in edges] == [
        ("PREQUEL", 1, "Show"),
        ("SEQUEL", 4, "Show 2"),
    ]


def test_jikan_relations_fall_back_to_first_sequel() -> None:
    edges = extract_relations(
        {
            "relations": [
                {
                    "relation": "Sequel",
                    "entry": [
                        {"mal_id": 7, "type": "anime", "name": "Show Movie"},
                        {"mal_id": 8, "type": "anime", "name": "Show 2"},
                    ],
                }
            ]
        }
    )

    assert [edge.node.format for edge in edges] == ["anime", "anime"]
    picked = pick_relation(edges, "SEQUEL")
    assert picked is not None and picked.node.id == 7


def test_map_anime_tolerates_malformed_images() -> None:
    summary = map_anime(_anime(images="not-a-mapping"))

    assert summary.image is None


def test_map_pagination_reads_upstream_shape() -> None:
    pagination = map_pagination(
        {
            "last_visible_page": 12,
            "has_next_page": True,
            "current_page": 2,
            "items": {"count": 24, "total": 280, "per_page": 24},
        },
        page=2,
    )

    assert pagination is not None
    assert pagination.page == 2
    assert pagination.has_next_page is True
    assert pagination.last_visible_page == 12
    assert pagination.items is not None
    assert pagination.items.total == 280
    assert map_pagination(None, page=1) is None


@pytest.mark.anyio("asyncio")
async def test_episodes_fall_back_to_sequential_numbers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v4/anime/21/episodes"
        assert request.url.params["page"] == "2"
        return httpx.Response(
            200,
            json={
                "pagination": {"last_visible_page": 3, "has_next_page": True},
                "data": [
                    {"mal_id": 101, "episode": None, "title": "", "title_romanji": "Romaji", "aired": "2001-01-01"},
                    {"mal_id": None, "episode": "102", "title": "Named"},
                ],
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        adapter = JikanAdapter(ResilientFetcher(client, backoff_seconds=0), JIKAN)
        batch = await adapter.episodes(21, page=2)

    first, second = batch.episodes.episodes
    assert (first.id, first.number, first.title, first.air_date) == ("101", 101, "Romaji", "2001-01-01")
    assert (second.id, second.number, second.title) == ("21-102", 102, "Named")
    assert batch.pagination is not None
    assert batch.pagination.page == 2
    assert batch.pagination.last_visible_page == 3


@pytest.mark.anyio("asyncio")
async def test_fetch_full_returns_none_on_missing_title() -> None:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda _: httpx.Response(404, json={"status": 404}))
    ) as client:
        adapter = JikanAdapter(ResilientFetcher(client, backoff_seconds=0), JIKAN)
        assert await adapter.fetch_full(999) is None
        assert await adapter.fetch_title(999) is None
        assert await adapter.top_anime() == []
