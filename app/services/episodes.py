"""Merge per-provider episode lists into one ordered, paged sequence."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from ..models import EpisodeRecord, Pagination, PaginationItems
from ..utils import coerce_int


@dataclass(slots=True)
class RawEpisode:
    """An episode as an adapter read it; ``number`` is not yet validated."""

    id: str
    number: Any
    title: str | None = None
    air_date: str | None = None


@dataclass(slots=True)
class ProviderEpisodes:
    """Episodes contributed by one provider."""

    provider: str
    episodes: list[RawEpisode] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.episodes)


def _preference_index(provider: str, preference_order: Sequence[str]) -> int:
    try:
        return list(preference_order).index(provider)
    except ValueError:
        return len(preference_order)


def reconcile_episodes(
    provider_lists: Sequence[ProviderEpisodes],
    preference_order: Sequence[str],
) -> list[EpisodeRecord]:
    """Deduplicate episodes across providers by episode number.

    Providers are visited in ``preference_order`` (unknown providers last,
    ties keep their input order). The first provider to supply a number owns
    it; later duplicates are dropped, as are episodes whose number is missing,
    non-numeric or not positive. The result is sorted by number.
    """

    ordered = sorted(
        provider_lists,
        key=lambda entry: _preference_index(entry.provider, preference_order),
    )
    merged: dict[int, EpisodeRecord] = {}
    for provider_list in ordered:
        for raw in provider_list.episodes:
            number = coerce_int(raw.number)
            if number <= 0 or number in merged:
                continue
            merged[number] = EpisodeRecord(
                id=str(raw.id),
                number=number,
                title=str(raw.title) if raw.title else None,
                air_date=str(raw.air_date) if raw.air_date else None,
            )
    return [merged[number] for number in sorted(merged)]


def paginate_episodes(
    episodes: Sequence[EpisodeRecord], *, page: int, per_page: int
) -> tuple[list[EpisodeRecord], Pagination]:
    """Slice one page out of a reconciled list and describe it."""

    page = max(1, page)
    total = len(episodes)
    start = (page - 1) * per_page
    window = list(episodes[start : start + per_page])
    pagination = Pagination(
        page=page,
        has_next_page=total > page * per_page,
        last_visible_page=max(1, math.ceil(total / per_page)),
        items=PaginationItems(count=len(window), total=total, per_page=per_page),
    )
    return window, pagination
