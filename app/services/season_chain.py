"""Assemble an ordered season list by walking prequel/sequel relations."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from ..models import RelationEdge, RelationType, SeasonRef, TitleRecord
from ..utils import normalize_base_title

logger = logging.getLogger(__name__)

NodeLookup = Callable[[int], Awaitable["TitleRecord | None"]]

DEFAULT_MAX_DEPTH = 8


def pick_relation(
    edges: Sequence[RelationEdge], relation_type: RelationType
) -> RelationEdge | None:
    """Choose the edge to follow: the first TV entry, else the first entry."""

    candidates = [edge for edge in edges if edge.relation_type == relation_type]
    if not candidates:
        return None
    for edge in candidates:
        if (edge.node.format or "").upper() == "TV":
            return edge
    return candidates[0]


class SeasonChainResolver:
    """Walk relation edges outward from one title.

    Nodes are fetched by id through ``lookup`` at every step. A failed lookup
    (``None`` or an exception) truncates that direction of the walk; the
    partial chain is still returned.
    """

    def __init__(self, lookup: NodeLookup, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._lookup = lookup
        self._max_depth = max_depth

    async def resolve(self, start: TitleRecord) -> list[SeasonRef]:
        if start.id is None:
            return []
        seen: set[int] = {start.id}
        # Backward first: an id reachable both ways belongs to the prequel side.
        back = await self._walk(start, "PREQUEL", seen)
        forward = await self._walk(start, "SEQUEL", seen)
        chain = [*reversed(back), start, *forward]
        return [
            SeasonRef(
                id=record.id,
                number=position,
                title=normalize_base_title(record.raw_title or record.summary.title),
            )
            for position, record in enumerate(chain, start=1)
            if record.id is not None
        ]

    async def _walk(
        self, start: TitleRecord, relation_type: RelationType, seen: set[int]
    ) -> list[TitleRecord]:
        accepted: list[TitleRecord] = []
        node = start
        for _ in range(self._max_depth):
            edge = pick_relation(node.relations, relation_type)
            if edge is None or edge.node.id in seen:
                break
            seen.add(edge.node.id)
            try:
                record = await self._lookup(edge.node.id)
            except Exception:
                logger.exception(
                    "Season chain lookup for %s crashed; truncating", edge.node.id
                )
                break
            if record is None:
                logger.debug(
                    "Season chain %s walk stopped at %s", relation_type.lower(), edge.node.id
                )
                break
            if record.id is None:
                break
            if record.id != edge.node.id:
                if record.id in seen:
                    break
                seen.add(record.id)
            accepted.append(record)
            node = record
        return accepted
