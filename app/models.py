"""Pydantic models describing canonical anime records and response envelopes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RelationType = Literal["PREQUEL", "SEQUEL"]
SubDub = Literal["SUB", "DUB", "SUB/DUB"]


class SeasonRef(BaseModel):
    """One entry of a resolved season chain."""

    id: int
    number: int = Field(ge=1)
    title: str


class AnimeSummary(BaseModel):
    """Provider-agnostic view of a single title.

    ``title`` always holds the normalized base title; ``id`` is the canonical
    (MyAnimeList) identifier or ``None`` when only a secondary source knew the
    title.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    title: str
    image: str | None = None
    type: str | None = None
    year: int | None = None
    rating: float | None = None
    sub_dub: SubDub | None = Field(default=None, alias="subDub")
    genres: list[str] = Field(default_factory=list)
    synopsis: str = ""
    seasons: list[SeasonRef] = Field(default_factory=list)
    is_new_season: bool | None = Field(default=None, alias="isNewSeason")

    def is_movie(self) -> bool:
        return (self.type or "").strip().lower() == "movie"


class RelationNode(BaseModel):
    """The target of a relation edge."""

    id: int
    format: str | None = None
    title: str = ""


class RelationEdge(BaseModel):
    """A directed prequel/sequel link to another title."""

    model_config = ConfigDict(populate_by_name=True)

    relation_type: RelationType = Field(alias="relationType")
    node: RelationNode


class TitleRecord(BaseModel):
    """A full upstream record: the summary plus its relation edges."""

    summary: AnimeSummary
    raw_title: str = ""
    relations: list[RelationEdge] = Field(default_factory=list)

    @property
    def id(self) -> int | None:
        return self.summary.id


class EpisodeRecord(BaseModel):
    """A single reconciled episode."""

    id: str
    number: int = Field(ge=1)
    title: str | None = None
    air_date: str | None = None


class PaginationItems(BaseModel):
    count: int
    total: int
    per_page: int


class Pagination(BaseModel):
    """Pagination metadata attached to paged envelopes."""

    page: int = 1
    has_next_page: bool = False
    last_visible_page: int | None = None
    items: PaginationItems | None = None


class Genre(BaseModel):
    id: int
    name: str


class StreamLink(BaseModel):
    name: str
    url: str


class SummaryList(BaseModel):
    results: list[AnimeSummary] = Field(default_factory=list)


class DiscoverPage(BaseModel):
    results: list[AnimeSummary] = Field(default_factory=list)
    pagination: Pagination | None = None


class EpisodePage(BaseModel):
    episodes: list[EpisodeRecord] = Field(default_factory=list)
    pagination: Pagination | None = None


class StreamLinks(BaseModel):
    links: list[StreamLink] = Field(default_factory=list)


class GenreList(BaseModel):
    genres: list[Genre] = Field(default_factory=list)
