"""Kingmaker conflict engine public API."""

from .app import EngineApp
from .config import KingmakerConfig

__all__ = [
    "EngineApp",
    "KingmakerConfig",
]
