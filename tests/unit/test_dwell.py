"""Unit tests for per-module dwell timing."""

from __future__ import annotations

import pytest

from studytrack.core.dwell import ModuleDwellTracker, validate_module_id
from studytrack.core.interaction_log import InteractionLog
from studytrack.core.types import EventKind


@pytest.fixture
def log(clock):
    return InteractionLog(clock=clock)


@pytest.fixture
def dwell(log, clock):
    return ModuleDwellTracker(log, clock=clock)


class TestModuleDwellTracker:
    """Tests for ModuleDwellTracker."""

    def test_starts_idle(self, dwell):
        assert not dwell.is_tracking
        assert dwell.current_module is None

    def test_open_and_close_books_elapsed_time(self, dwell, log, clock):
        """Closing a module should add the elapsed milliseconds."""
        dwell.start_module(3)
        clock.advance(seconds=90)
        spent = dwell.end_module(3)

        assert spent == 90_000
        assert dwell.time_spent == {3: 90_000}
        assert not dwell.is_tracking

        start, end = log.records
        assert start.type == EventKind.MODULE_START
        assert start.data["moduleId"] == 3
        assert end.type == EventKind.MODULE_END
        assert end.data == {
            "moduleId": 3,
            "timestamp": "2024-03-13T09:31:30.000",
            "timeSpent": 90_000,
            "totalTime": 90_000,
        }

    def test_time_accumulates_across_visits(self, dwell, log, clock):
        """Repeat visits should add to the module's running total."""
        dwell.start_module(2)
        clock.advance(seconds=10)
        dwell.end_module()
        clock.advance(minutes=5)
        dwell.start_module(2)
        clock.advance(seconds=20)
        dwell.end_module()

        assert dwell.time_spent[2] == 30_000
        assert log.records[-1].data["totalTime"] == 30_000

    def test_switching_modules_closes_previous(self, dwell, log, clock):
        """Opening a module while tracking should book time to the old one."""
        dwell.start_module(1)
        clock.advance(seconds=5)
        dwell.start_module(2)
        clock.advance(seconds=7)
        dwell.end_module()

        assert dwell.time_spent == {1: 5_000, 2: 7_000}
        kinds = [r.type for r in log]
        assert kinds == [
            EventKind.MODULE_START,
            EventKind.MODULE_END,
            EventKind.MODULE_START,
            EventKind.MODULE_END,
        ]

    def test_end_without_start_is_noop(self, dwell, log):
        """Closing while idle should change nothing."""
        assert dwell.end_module(4) is None
        assert dwell.time_spent == {}
        assert len(log) == 0

    def test_mismatched_end_closes_active_module(self, dwell, clock):
        """Time should go to the module that was actually open."""
        dwell.start_module(5)
        clock.advance(seconds=3)
        dwell.end_module(9)

        assert dwell.time_spent == {5: 3_000}
        assert 9 not in dwell.time_spent

    def test_clock_going_backwards_books_zero(self, dwell, clock):
        """Elapsed time should never be negative."""
        dwell.start_module(1)
        clock.advance(seconds=-30)
        assert dwell.end_module() == 0
        assert dwell.time_spent[1] == 0

    @pytest.mark.parametrize("bad", [0, -1, True, "3", 2.5, None])
    def test_rejects_invalid_module_ids(self, dwell, bad):
        with pytest.raises(ValueError):
            dwell.start_module(bad)

    def test_validate_module_id_passes_through(self):
        assert validate_module_id(7) == 7
