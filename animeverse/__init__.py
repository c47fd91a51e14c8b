"""Installable name for the catalog service; the routes live in ``app.main``."""

from __future__ import annotations

from app.main import app, create_app

__all__ = ["app", "create_app"]
