"""Unit tests for the tracker data model."""

from __future__ import annotations

from datetime import datetime

import pytest

from studytrack.core.types import (
    EventKind,
    InteractionRecord,
    TrackerSnapshot,
    VideoWatchState,
    WatchSession,
    elapsed_ms,
    format_timestamp,
    parse_timestamp,
    round_half_up,
)


class TestHelpers:
    """Tests for timestamp and rounding helpers."""

    def test_format_timestamp_has_milliseconds(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000"

    def test_parse_naive_timestamp(self):
        assert parse_timestamp("2024-01-02T03:04:05.123") == datetime(
            2024, 1, 2, 3, 4, 5, 123000
        )

    def test_parse_zulu_timestamp_is_naive(self):
        assert parse_timestamp("2024-01-02T03:04:05.000Z").tzinfo is None

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    @pytest.mark.parametrize(
        "value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (-0.5, 0)]
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_elapsed_ms_clamps_negative(self):
        later = datetime(2024, 1, 1, 12, 0, 1)
        earlier = datetime(2024, 1, 1, 12, 0, 0)
        assert elapsed_ms(earlier, later) == 1000
        assert elapsed_ms(later, earlier) == 0


class TestInteractionRecord:
    """Tests for InteractionRecord."""

    def test_known_kind_becomes_enum(self):
        record = InteractionRecord.from_dict(
            {"type": "module_start", "data": {"moduleId": 2}, "timestamp": "2024-03-13T10:00:00"}
        )
        assert record.type is EventKind.MODULE_START
        assert record.module_id == 2

    def test_unknown_kind_is_kept(self):
        record = InteractionRecord.from_dict(
            {"type": "quiz_attempt", "data": {}, "timestamp": "2024-03-13T10:00:00"}
        )
        assert record.type == "quiz_attempt"
        assert record.to_dict()["type"] == "quiz_attempt"

    @pytest.mark.parametrize(
        "raw",
        [
            {"data": {}, "timestamp": "2024-03-13T10:00:00"},
            {"type": "custom", "data": {}},
            {"type": "custom", "data": {}, "timestamp": "not a date"},
        ],
    )
    def test_malformed_records_rejected(self, raw):
        with pytest.raises(ValueError):
            InteractionRecord.from_dict(raw)

    @pytest.mark.parametrize("module_id", [True, "3", None, 1.0])
    def test_non_integer_module_id_ignored(self, module_id):
        record = InteractionRecord(
            type="custom", data={"moduleId": module_id}, timestamp="2024-03-13T10:00:00"
        )
        assert record.module_id is None


class TestVideoWatchState:
    """Tests for VideoWatchState serialization."""

    def test_to_dict_uses_camel_case(self):
        state = VideoWatchState(
            completion_percentage=40,
            last_position=40.0,
            watch_sessions=[
                WatchSession(
                    start="2024-03-13T10:00:00.000",
                    end="2024-03-13T10:00:40.000",
                    start_time=0,
                    end_time=40.0,
                )
            ],
        )
        assert state.to_dict() == {
            "totalWatched": 0,
            "completionPercentage": 40,
            "lastPosition": 40.0,
            "watchSessions": [
                {
                    "start": "2024-03-13T10:00:00.000",
                    "end": "2024-03-13T10:00:40.000",
                    "startTime": 0,
                    "endTime": 40.0,
                }
            ],
        }

    def test_from_dict_drops_bad_sessions_and_clamps(self):
        state = VideoWatchState.from_dict(
            {
                "completionPercentage": 250,
                "lastPosition": "far",
                "watchSessions": [
                    {"start": "2024-03-13T10:00:00", "end": "2024-03-13T10:01:00",
                     "startTime": 0, "endTime": 60},
                    {"start": 5},
                    "junk",
                ],
            }
        )
        assert state.completion_percentage == 100
        assert state.last_position == 0
        assert len(state.watch_sessions) == 1


class TestTrackerSnapshot:
    """Tests for TrackerSnapshot parsing."""

    def test_round_trip(self):
        snapshot = TrackerSnapshot(
            video_watch_time={"v1": VideoWatchState(completion_percentage=10)},
            module_time_spent={1: 500, 12: 90},
            interactions=[
                InteractionRecord(
                    type=EventKind.MODULE_START,
                    data={"moduleId": 1},
                    timestamp="2024-03-13T10:00:00.000",
                )
            ],
            last_saved="2024-03-13T10:05:00.000",
        )
        restored = TrackerSnapshot.from_dict(snapshot.to_dict())
        assert restored == snapshot

    def test_module_keys_serialized_as_strings(self):
        blob = TrackerSnapshot(module_time_spent={3: 10}).to_dict()
        assert blob["moduleTimeSpent"] == {"3": 10}

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def test_non_dict_yields_empty(self, data):
        assert TrackerSnapshot.from_dict(data) == TrackerSnapshot()

    def test_partial_blob_defaults_missing_fields(self):
        snapshot = TrackerSnapshot.from_dict({"moduleTimeSpent": {"2": 1000}})
        assert snapshot.module_time_spent == {2: 1000}
        assert snapshot.video_watch_time == {}
        assert snapshot.interactions == []
        assert snapshot.last_saved is None

    def test_bad_fields_fall_back_independently(self):
        snapshot = TrackerSnapshot.from_dict(
            {
                "videoWatchTime": "oops",
                "moduleTimeSpent": {"abc": 5, "4": 7},
                "interactions": [
                    {"type": "custom", "data": {}, "timestamp": "2024-03-13T10:00:00"},
                    {"type": "custom"},
                ],
                "lastSaved": 123,
            }
        )
        assert snapshot.video_watch_time == {}
        assert snapshot.module_time_spent == {4: 7}
        assert len(snapshot.interactions) == 1
        assert snapshot.last_saved is None

    def test_oversized_log_truncated_to_newest(self):
        interactions = [
            {"type": "custom", "data": {"n": i}, "timestamp": "2024-03-13T10:00:00"}
            for i in range(10)
        ]
        snapshot = TrackerSnapshot.from_dict({"interactions": interactions}, max_interactions=4)
        assert [r.data["n"] for r in snapshot.interactions] == [6, 7, 8, 9]
