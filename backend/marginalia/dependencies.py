"""
FastAPI dependencies shared by the routers.

Tests replace ``get_highlight_engine`` through ``app.dependency_overrides``.
"""

from functools import lru_cache

from .config import get_settings
from .services.highlight_engine import HighlightEngine


@lru_cache
def get_highlight_engine() -> HighlightEngine:
    return HighlightEngine.from_settings(get_settings())
