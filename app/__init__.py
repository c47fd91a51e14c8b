"""Animeverse: one API over Jikan metadata and Consumet episode/stream sources."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    # Importing ``app.main`` builds the FastAPI app, so defer it until asked.
    if name in __all__:
        return getattr(import_module("app.main"), name)
    raise AttributeError(f"module 'app' has no attribute {name}")
