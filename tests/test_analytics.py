"""Tests for derived learning analytics."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from studytrack.core.analytics import AnalyticsEngine, compute_streak
from studytrack.core.course import CourseProgress
from studytrack.core.submissions import SubmissionBook
from studytrack.core.types import EventKind, InteractionRecord, TrackerSnapshot, VideoWatchState


def record(kind, timestamp, **data):
    return InteractionRecord(type=kind, data=data, timestamp=timestamp)


@pytest.fixture
def today():
    return date(2024, 3, 13)


class TestComputeStreak:
    """Tests for compute_streak."""

    def test_no_activity(self, today):
        streak = compute_streak([], today)
        assert (streak.current_streak, streak.max_streak, streak.total_days_active) == (0, 0, 0)

    def test_only_today(self, today):
        streak = compute_streak([today, today], today)
        assert streak.current_streak == 1
        assert streak.max_streak == 1
        assert streak.total_days_active == 1

    def test_run_ending_today(self, today):
        days = [date(2024, 3, 11), date(2024, 3, 12), today]
        streak = compute_streak(days, today)
        assert streak.current_streak == 3
        assert streak.max_streak == 3

    def test_today_and_yesterday(self, today):
        streak = compute_streak([date(2024, 3, 12), today], today)
        assert (streak.current_streak, streak.max_streak) == (2, 2)

    def test_gap_breaks_run(self, today):
        streak = compute_streak([date(2024, 3, 10), today], today)
        assert (streak.current_streak, streak.max_streak) == (1, 1)
        assert streak.total_days_active == 2

    def test_run_ending_yesterday_is_not_current(self, today):
        days = [date(2024, 3, 10), date(2024, 3, 11), date(2024, 3, 12)]
        streak = compute_streak(days, today)
        assert streak.current_streak == 0
        assert streak.max_streak == 3
        assert streak.total_days_active == 3

    def test_longest_run_in_the_past(self, today):
        days = [
            date(2024, 2, 1),
            date(2024, 2, 2),
            date(2024, 2, 3),
            date(2024, 2, 4),
            date(2024, 3, 12),
            today,
        ]
        streak = compute_streak(days, today)
        assert streak.current_streak == 2
        assert streak.max_streak == 4
        assert streak.total_days_active == 6

    def test_unsorted_input(self, today):
        days = [today, date(2024, 3, 1), date(2024, 3, 12), date(2024, 3, 2)]
        streak = compute_streak(days, today)
        assert streak.current_streak == 2
        assert streak.max_streak == 2

    def test_streak_crosses_month_boundary(self):
        days = [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
        streak = compute_streak(days, date(2024, 3, 1))
        assert streak.current_streak == 3


class TestSummary:
    """Tests for AnalyticsEngine.summary."""

    def test_empty_state(self, clock):
        summary = AnalyticsEngine(TrackerSnapshot(), CourseProgress(), clock).summary()
        assert summary.overall_progress == 0
        assert summary.completed_modules == 0
        assert summary.total_modules == 12
        assert summary.time_spent_total == 0
        assert summary.average_time_per_module == 0
        assert summary.videos_watched == 0
        assert summary.assignments_submitted == 0

    def test_counts_and_averages(self, clock):
        snapshot = TrackerSnapshot(
            video_watch_time={"a": VideoWatchState(), "b": VideoWatchState()},
            module_time_spent={1: 1000, 2: 2000, 3: 0},
            interactions=[
                record(EventKind.ASSIGNMENT_SUBMIT, "2024-03-13T09:00:00", moduleId=1),
                record(EventKind.ASSIGNMENT_SUBMIT, "2024-03-13T09:10:00", moduleId=2),
                record(EventKind.MODULE_START, "2024-03-13T09:20:00", moduleId=3),
            ],
        )
        course = CourseProgress(completed=[1, 2, 3])
        summary = AnalyticsEngine(snapshot, course, clock).summary()

        assert summary.overall_progress == 25
        assert summary.completed_modules == 3
        assert summary.time_spent_total == 3000
        assert summary.average_time_per_module == 1000
        assert summary.videos_watched == 2
        assert summary.assignments_submitted == 2

    def test_progress_rounds_half_up(self, clock):
        course = CourseProgress(completed=[1], total_modules=8)
        summary = AnalyticsEngine(TrackerSnapshot(), course, clock).summary()
        assert summary.overall_progress == 13  # 12.5

    def test_ids_outside_catalog_not_counted(self, clock):
        course = CourseProgress(completed=[1, 2, 99], total_modules=4)
        summary = AnalyticsEngine(TrackerSnapshot(), course, clock).summary()
        assert summary.completed_modules == 2
        assert summary.overall_progress == 50

    def test_progress_never_exceeds_100(self, clock):
        course = CourseProgress(completed=[1, 2, 3, 7, 8], total_modules=3)
        summary = AnalyticsEngine(TrackerSnapshot(), course, clock).summary()
        assert summary.overall_progress == 100

    def test_to_dict_keys(self, clock):
        data = AnalyticsEngine(TrackerSnapshot(), CourseProgress(), clock).summary().to_dict()
        assert set(data) == {
            "overallProgress",
            "completedModules",
            "totalModules",
            "timeSpentTotal",
            "averageTimePerModule",
            "videosWatched",
            "assignmentsSubmitted",
        }


class TestLearningPatterns:
    """Tests for AnalyticsEngine.learning_patterns."""

    def test_empty_log_defaults_to_zero(self, clock):
        patterns = AnalyticsEngine(TrackerSnapshot(), CourseProgress(), clock).learning_patterns()
        assert patterns.most_active_hour == 0
        assert patterns.most_active_day == 0
        assert patterns.total_interactions == 0
        assert patterns.module_access == {}

    def test_histograms(self, clock):
        snapshot = TrackerSnapshot(
            interactions=[
                # 2024-03-10 is a Sunday, 2024-03-13 a Wednesday
                record(EventKind.MODULE_START, "2024-03-10T08:15:00", moduleId=1),
                record(EventKind.MODULE_START, "2024-03-13T20:00:00", moduleId=2),
                record(EventKind.MODULE_END, "2024-03-13T20:30:00", moduleId=2),
                record(EventKind.GITHUB_INTERACTION, "2024-03-13T21:00:00", action="view"),
            ]
        )
        patterns = AnalyticsEngine(snapshot, CourseProgress(), clock).learning_patterns()

        assert patterns.hourly[8] == 1
        assert patterns.hourly[20] == 2
        assert patterns.daily[0] == 1
        assert patterns.daily[3] == 3
        assert patterns.most_active_hour == 20
        assert patterns.most_active_day == 3
        assert patterns.module_access == {1: 1, 2: 2}
        assert patterns.total_interactions == 4

    def test_ties_go_to_lowest_index(self, clock):
        snapshot = TrackerSnapshot(
            interactions=[
                record("custom", "2024-03-13T15:00:00"),
                record("custom", "2024-03-13T07:00:00"),
            ]
        )
        patterns = AnalyticsEngine(snapshot, CourseProgress(), clock).learning_patterns()
        assert patterns.most_active_hour == 7

    def test_to_dict_stringifies_module_ids(self, clock):
        snapshot = TrackerSnapshot(
            interactions=[record(EventKind.MODULE_START, "2024-03-13T10:00:00", moduleId=4)]
        )
        data = AnalyticsEngine(snapshot, CourseProgress(), clock).learning_patterns().to_dict()
        assert data["moduleAccessFrequency"] == {"4": 1}
        assert len(data["hourlyActivity"]) == 24
        assert len(data["dailyActivity"]) == 7


class TestStudyStreak:
    """Tests for AnalyticsEngine.study_streak."""

    def test_uses_clock_for_today(self, clock):
        snapshot = TrackerSnapshot(
            interactions=[
                record("custom", "2024-03-12T23:59:00"),
                record("custom", "2024-03-13T00:01:00"),
            ]
        )
        streak = AnalyticsEngine(snapshot, CourseProgress(), clock).study_streak()
        assert streak.current_streak == 2

        clock.set(datetime(2024, 3, 14, 9, 0))
        streak = AnalyticsEngine(snapshot, CourseProgress(), clock).study_streak()
        assert streak.current_streak == 0
        assert streak.max_streak == 2


class TestModuleProgress:
    """Tests for module_progress and export."""

    def test_unvisited_module(self, clock):
        progress = AnalyticsEngine(TrackerSnapshot(), CourseProgress(), clock).module_progress(9)
        assert progress.time_spent == 0
        assert progress.completed is False
        assert progress.interactions == 0
        assert progress.last_accessed is None

    def test_visited_module(self, clock):
        snapshot = TrackerSnapshot(
            module_time_spent={2: 4500},
            interactions=[
                record(EventKind.MODULE_START, "2024-03-13T10:00:00.000", moduleId=2),
                record(EventKind.MODULE_START, "2024-03-13T10:05:00.000", moduleId=3),
                record(EventKind.MODULE_END, "2024-03-13T10:10:00.000", moduleId=2),
            ],
        )
        course = CourseProgress(completed=[2])
        progress = AnalyticsEngine(snapshot, course, clock).module_progress(2)

        assert progress.time_spent == 4500
        assert progress.completed is True
        assert progress.interactions == 2
        assert progress.last_accessed == "2024-03-13T10:10:00.000"

    def test_export_document(self, clock):
        snapshot = TrackerSnapshot(
            video_watch_time={"v": VideoWatchState(completion_percentage=30)},
            interactions=[record("custom", "2024-03-13T10:00:00")],
        )
        course = CourseProgress(total_modules=3)
        document = AnalyticsEngine(snapshot, course, clock).export()

        assert set(document) == {
            "summary",
            "moduleProgress",
            "videoProgress",
            "interactions",
            "submissions",
            "exportedAt",
        }
        assert list(document["moduleProgress"]) == ["1", "2", "3"]
        assert document["videoProgress"]["v"]["completionPercentage"] == 30
        assert document["exportedAt"] == "2024-03-13T09:30:00.000"
        assert len(document["interactions"]) == 1

    def test_submission_reported_per_module(self, clock):
        submissions = SubmissionBook()
        submissions.record(2, "url", {"url": "https://example.com"}, clock())
        course = CourseProgress(total_modules=3)
        engine = AnalyticsEngine(TrackerSnapshot(), course, clock, submissions)

        assert engine.module_progress(1).submission is None
        assert engine.module_progress(2).submission["url"] == "https://example.com"
        document = engine.export()
        assert document["moduleProgress"]["2"]["submission"]["assignmentType"] == "url"
        assert document["submissions"]["2"]["submittedAt"] == "2024-03-13T09:30:00.000"
