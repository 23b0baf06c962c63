"""Testing utilities for Kingmaker."""

from .clock import ManualClock, ManualScheduler, ManualTimer
from .factory import LedgerScenarioFactory, PlayerFactory
from .fixtures import app_fixture, memory_app

__all__ = [
    "ManualClock",
    "ManualScheduler",
    "ManualTimer",
    "LedgerScenarioFactory",
    "PlayerFactory",
    "app_fixture",
    "memory_app",
]
