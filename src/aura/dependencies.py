"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from aura.config import get_settings
from aura.matches.recap_service import RecapService


@lru_cache
def get_recap_service() -> RecapService:
    """Recap generator built from settings. Tests override it through ``app.dependency_overrides``."""
    return RecapService.from_settings(get_settings())
