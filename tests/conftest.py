"""Shared fixtures for StudyTrack tests."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest


class FakeClock:
    """Controllable stand-in for datetime.now."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a timedelta built from kwargs."""
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture
def clock() -> FakeClock:
    """A clock starting at a fixed Wednesday morning."""
    return FakeClock(datetime(2024, 3, 13, 9, 30, 0))
