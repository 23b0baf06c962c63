"""Pytest fixtures for Kingmaker."""

from __future__ import annotations

import pytest

from ..app import EngineApp
from ..config import KingmakerConfig
from .clock import ManualClock, ManualScheduler


@pytest.fixture()
def memory_app() -> EngineApp:
    return app_fixture()


def app_fixture(*, ignore_cancel: bool = False, **kwargs) -> EngineApp:
    """In-memory app on simulated time; ``app.scheduler.advance`` drives timers."""
    config = KingmakerConfig(**kwargs)
    clock = ManualClock()
    return EngineApp(
        config,
        clock=clock,
        scheduler=ManualScheduler(clock, ignore_cancel=ignore_cancel),
    )
