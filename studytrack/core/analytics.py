"""Derived learning metrics.

Every function here reads tracker state and never mutates it; results are
recomputed on each call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable

from studytrack.core.course import CourseProgress
from studytrack.core.submissions import SubmissionBook
from studytrack.core.types import (
    EventKind,
    InteractionRecord,
    TrackerSnapshot,
    format_timestamp,
    round_half_up,
)

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class ProgressSummary:
    """Headline numbers for the dashboard."""

    overall_progress: int
    completed_modules: int
    total_modules: int
    time_spent_total: int
    average_time_per_module: float
    videos_watched: int
    assignments_submitted: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallProgress": self.overall_progress,
            "completedModules": self.completed_modules,
            "totalModules": self.total_modules,
            "timeSpentTotal": self.time_spent_total,
            "averageTimePerModule": self.average_time_per_module,
            "videosWatched": self.videos_watched,
            "assignmentsSubmitted": self.assignments_submitted,
        }


@dataclass(frozen=True)
class LearningPatterns:
    """When and where the learner is most active.

    Attributes:
        hourly: Interaction counts by hour of day (0-23)
        daily: Interaction counts by day of week (0 = Sunday)
        module_access: Interaction counts per module id
        total_interactions: Number of interactions classified
    """

    hourly: tuple[int, ...]
    daily: tuple[int, ...]
    module_access: dict[int, int] = field(default_factory=dict)
    total_interactions: int = 0

    @property
    def most_active_hour(self) -> int:
        return _argmax(self.hourly)

    @property
    def most_active_day(self) -> int:
        return _argmax(self.daily)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mostActiveHour": self.most_active_hour,
            "mostActiveDay": self.most_active_day,
            "moduleAccessFrequency": {str(k): v for k, v in self.module_access.items()},
            "totalInteractions": self.total_interactions,
            "hourlyActivity": list(self.hourly),
            "dailyActivity": list(self.daily),
        }


@dataclass(frozen=True)
class StudyStreak:
    """Consecutive-day activity statistics."""

    current_streak: int
    max_streak: int
    total_days_active: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentStreak": self.current_streak,
            "maxStreak": self.max_streak,
            "totalDaysActive": self.total_days_active,
        }


@dataclass(frozen=True)
class ModuleProgress:
    """Time, completion and activity for a single module."""

    module_id: int
    time_spent: int
    completed: bool
    interactions: int
    last_accessed: str | None
    submission: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "moduleId": self.module_id,
            "timeSpent": self.time_spent,
            "completed": self.completed,
            "interactions": self.interactions,
            "lastAccessed": self.last_accessed,
            "submission": self.submission,
        }


def _argmax(counts: tuple[int, ...]) -> int:
    """Index of the largest count; ties go to the lowest index."""
    best = 0
    for index, count in enumerate(counts):
        if count > counts[best]:
            best = index
    return best


def _occurrences(interactions: Iterable[InteractionRecord]) -> Iterable[datetime]:
    """Yield each interaction's local time, skipping unparseable stamps."""
    for record in interactions:
        try:
            yield record.occurred_at
        except ValueError:
            logger.warning("Skipping interaction with bad timestamp %r", record.timestamp)


def compute_streak(active_days: Iterable[date], today: date) -> StudyStreak:
    """Compute current and longest runs of consecutive active days.

    Distinct days are scanned newest first. A day exactly one day before its
    predecessor extends the run; any other gap closes it and starts a new
    run of one. The current streak is the length of the run containing
    today, so it is 0 unless there was activity today.

    Args:
        active_days: Days with at least one interaction (duplicates allowed)
        today: The learner's current local date

    Returns:
        The streak statistics
    """
    days = sorted(set(active_days), reverse=True)
    if not days:
        return StudyStreak(current_streak=0, max_streak=0, total_days_active=0)

    current_streak = 0
    max_streak = 0
    run = 1
    run_has_today = days[0] == today

    for previous, day in zip(days, days[1:]):
        if (previous - day).days == 1:
            run += 1
            continue
        max_streak = max(max_streak, run)
        if run_has_today:
            current_streak = run
        run = 1
        run_has_today = day == today

    max_streak = max(max_streak, run)
    if run_has_today:
        current_streak = run

    return StudyStreak(
        current_streak=current_streak,
        max_streak=max_streak,
        total_days_active=len(days),
    )


class AnalyticsEngine:
    """Read-only queries over a tracker snapshot and course progress."""

    def __init__(
        self,
        snapshot: TrackerSnapshot,
        course: CourseProgress,
        clock: Callable[[], datetime] = datetime.now,
        submissions: SubmissionBook | None = None,
    ):
        self.snapshot = snapshot
        self.course = course
        self._clock = clock
        self.submissions = submissions or SubmissionBook()

    def summary(self) -> ProgressSummary:
        """Overall completion, time totals and activity counts."""
        total_modules = self.course.total_modules
        # Ids outside the catalog (e.g. from an older, larger course) are not counted
        completed = sum(1 for m in set(self.course.completed) if 1 <= m <= total_modules)
        times = self.snapshot.module_time_spent
        time_total = sum(times.values())

        return ProgressSummary(
            overall_progress=(
                round_half_up(completed / total_modules * 100) if total_modules > 0 else 0
            ),
            completed_modules=completed,
            total_modules=total_modules,
            time_spent_total=time_total,
            average_time_per_module=time_total / len(times) if times else 0,
            videos_watched=len(self.snapshot.video_watch_time),
            assignments_submitted=sum(
                1
                for record in self.snapshot.interactions
                if record.kind == EventKind.ASSIGNMENT_SUBMIT.value
            ),
        )

    def learning_patterns(self) -> LearningPatterns:
        """Hour-of-day and day-of-week histograms plus module access counts."""
        hourly = [0] * HOURS_PER_DAY
        daily = [0] * DAYS_PER_WEEK
        module_access: dict[int, int] = {}

        for when in _occurrences(self.snapshot.interactions):
            hourly[when.hour] += 1
            # weekday() is Monday=0; the dashboard counts from Sunday
            daily[(when.weekday() + 1) % DAYS_PER_WEEK] += 1

        for record in self.snapshot.interactions:
            module_id = record.module_id
            if module_id is not None:
                module_access[module_id] = module_access.get(module_id, 0) + 1

        return LearningPatterns(
            hourly=tuple(hourly),
            daily=tuple(daily),
            module_access=module_access,
            total_interactions=len(self.snapshot.interactions),
        )

    def study_streak(self) -> StudyStreak:
        """Current and longest streaks of consecutive active days."""
        days = (when.date() for when in _occurrences(self.snapshot.interactions))
        return compute_streak(days, self._clock().date())

    def module_progress(self, module_id: int) -> ModuleProgress:
        """Progress for one module, whether or not it was ever visited."""
        related = [r for r in self.snapshot.interactions if r.module_id == module_id]
        submission = self.submissions.get(module_id)
        return ModuleProgress(
            module_id=module_id,
            time_spent=self.snapshot.module_time_spent.get(module_id, 0),
            completed=self.course.is_completed(module_id),
            interactions=len(related),
            last_accessed=related[-1].timestamp if related else None,
            submission=submission.to_dict() if submission else None,
        )

    def export(self) -> dict[str, Any]:
        """Full progress document with per-module entries for every module."""
        return {
            "summary": self.summary().to_dict(),
            "moduleProgress": {
                str(module_id): self.module_progress(module_id).to_dict()
                for module_id in range(1, self.course.total_modules + 1)
            },
            "videoProgress": {
                video_id: state.to_dict()
                for video_id, state in self.snapshot.video_watch_time.items()
            },
            "interactions": [record.to_dict() for record in self.snapshot.interactions],
            "submissions": self.submissions.to_dict(),
            "exportedAt": format_timestamp(self._clock()),
        }
