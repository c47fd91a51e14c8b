"""Utility helpers for the Animeverse service."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Any, Iterable, Mapping


_SEASON_SUFFIX_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\s*-\s*(?:Season|Cour|Part)\s*\d+$",
        r"\s*\(\s*(?:Season|Cour|Part)\s*\d+\s*\)$",
        r"\s*\b\d+(?:st|nd|rd|th)\s+Season\b.*$",
        r"\s*\bSeason\s+\d+(?:\s*Part\s*\d+)?\b.*$",
        r"\s*\bFinal Season(?:\s*Part\s*\d+)?\b.*$",
        r"\s+(?:II|III|IV|V|VI|VII|VIII|IX|X)$",
        r"\s+\d+$",
    )
)

SEASON_MARKER_RE = re.compile(
    r"(season\s*\d+|part\s*\d+|cour\s*\d+|final\s*season"
    r"|\bii\b|\biii\b|\biv\b|\bv\b|\bvi\b|\bvii\b|\bviii\b|\bix\b|\bx\b"
    r"|\d+\s*$)",
    re.IGNORECASE,
)


def normalize_base_title(title: Any) -> str:
    """Strip season, part, cour and sequel-number suffixes from a title.

    The strip sequence is repeated until the title stops changing, which makes
    the function idempotent: titles such as ``"Show 2 3"`` or
    ``"Show II - Season 2"`` lose every trailing marker, and feeding the result
    back in is a no-op.
    """

    current = str(title or "").strip()
    while True:
        stripped = current
        for pattern in _SEASON_SUFFIX_PATTERNS:
            stripped = pattern.sub("", stripped)
        stripped = stripped.strip()
        if stripped == current:
            return current
        current = stripped


def has_season_marker(title: Any) -> bool:
    """Return ``True`` when a raw title carries a season or sequel marker."""

    return bool(SEASON_MARKER_RE.search(str(title or "")))


def slugify(value: Any) -> str:
    """Return the provider slug for a title (``"Kimi no Na wa."`` -> ``kimi-no-na-wa``)."""

    value = unicodedata.normalize("NFKD", str(value or ""))
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.lower().strip()
    value = re.sub(r"[:\"'.,!?&/()\[\]]+", "", value)
    value = re.sub(r"\s+", "-", value)
    return re.sub(r"[^a-z0-9\-]", "", value)


def lookup_path(data: Any, path: str) -> Any:
    """Resolve a dotted ``path`` through nested mappings, or return ``None``."""

    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def first_present(
    data: Any, paths: Iterable[str], *, truthy: bool = False
) -> Any:
    """Return the first candidate field that is set on ``data``.

    Candidates are tried in order. By default a value counts as set when it is
    not ``None``; with ``truthy`` empty strings, zero and empty containers are
    skipped as well.
    """

    for path in paths:
        value = lookup_path(data, path)
        if value is None:
            continue
        if truthy and not value:
            continue
        return value
    return None


def coerce_int(value: Any, *, default: int = 0) -> int:
    """Coerce upstream numeric fields (``3``, ``"3"``, ``"3.0"``) to ``int``."""

    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return default
    return default
