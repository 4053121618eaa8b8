"""Core tracking components and analytics."""

from studytrack.core.analytics import (
    AnalyticsEngine,
    LearningPatterns,
    ModuleProgress,
    ProgressSummary,
    StudyStreak,
    compute_streak,
)
from studytrack.core.course import CourseProgress
from studytrack.core.dwell import DwellSession, ModuleDwellTracker, validate_module_id
from studytrack.core.interaction_log import InteractionLog
from studytrack.core.session import SessionLifecycle
from studytrack.core.tracker import (
    PROGRESS_KEY,
    SNAPSHOT_KEY,
    Autosaver,
    ProgressTracker,
    TrackerSettings,
)
from studytrack.core.types import (
    EventKind,
    InteractionRecord,
    TrackerSnapshot,
    VideoWatchState,
    WatchSession,
    format_timestamp,
    parse_timestamp,
)
from studytrack.core.video import VideoWatchTracker, completion_percentage

__all__ = [
    # Data model
    "EventKind",
    "InteractionRecord",
    "WatchSession",
    "VideoWatchState",
    "TrackerSnapshot",
    "format_timestamp",
    "parse_timestamp",
    # Components
    "InteractionLog",
    "DwellSession",
    "ModuleDwellTracker",
    "validate_module_id",
    "VideoWatchTracker",
    "completion_percentage",
    "SessionLifecycle",
    "CourseProgress",
    # Analytics
    "AnalyticsEngine",
    "ProgressSummary",
    "LearningPatterns",
    "StudyStreak",
    "ModuleProgress",
    "compute_streak",
    # Tracker
    "ProgressTracker",
    "TrackerSettings",
    "Autosaver",
    "SNAPSHOT_KEY",
    "PROGRESS_KEY",
]
