"""Progress tracker facade and persistence glue.

The ProgressTracker owns one instance of each tracking component, accepts
UI events, answers analytics queries, and loads/saves its state through a
DurableStore. The host constructs it explicitly; there is no global
instance.

Usage:
    store = JsonFileStore(data_dir)
    tracker = ProgressTracker(store, CourseProgress(total_modules=12))
    await tracker.load()
    tracker.session_start(user_agent="...", screen_resolution="1920x1080")
    tracker.module_opened(3)
    ...
    await tracker.shutdown()
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from studytrack.core.analytics import (
    AnalyticsEngine,
    LearningPatterns,
    ModuleProgress,
    ProgressSummary,
    StudyStreak,
)
from studytrack.core.course import DEFAULT_TOTAL_MODULES, CourseProgress
from studytrack.core.dwell import ModuleDwellTracker, validate_module_id
from studytrack.core.interaction_log import InteractionLog
from studytrack.core.session import SessionLifecycle
from studytrack.core.submissions import SubmissionBook
from studytrack.core.types import (
    DEFAULT_MAX_INTERACTIONS,
    EventKind,
    TrackerSnapshot,
    VideoWatchState,
    format_timestamp,
)
from studytrack.core.video import DEFAULT_SESSION_GAP_SECONDS, VideoWatchTracker
from studytrack.storage.base import DurableStore, StorageError

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "progressTracking"
PROGRESS_KEY = "userProgress"
SUBMISSIONS_KEY = "submissions"


@dataclass(frozen=True)
class TrackerSettings:
    """Tunables for the tracker.

    Attributes:
        total_modules: Number of modules in the course catalog
        max_interactions: Interactions retained in the log
        watch_session_gap_seconds: Gap that splits video watch sessions
        autosave_interval_seconds: Period of the background flush
        snapshot_key: Store key for the tracker snapshot
        progress_key: Store key for course completion state
        submissions_key: Store key for the latest submission per module
    """

    total_modules: int = DEFAULT_TOTAL_MODULES
    max_interactions: int = DEFAULT_MAX_INTERACTIONS
    watch_session_gap_seconds: float = DEFAULT_SESSION_GAP_SECONDS
    autosave_interval_seconds: float = 30
    snapshot_key: str = SNAPSHOT_KEY
    progress_key: str = PROGRESS_KEY
    submissions_key: str = SUBMISSIONS_KEY


def _decode(blob: str | None, key: str) -> Any:
    """Decode a stored JSON blob; corrupt blobs decode to None."""
    if blob is None:
        return None
    try:
        return json.loads(blob)
    except json.JSONDecodeError as e:
        logger.warning("Discarding corrupt %s blob: %s", key, e)
        return None


class ProgressTracker:
    """Engagement and progress tracker for a single learner."""

    def __init__(
        self,
        store: DurableStore,
        course: CourseProgress | None = None,
        settings: TrackerSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker with empty state.

        Args:
            store: Where snapshots are loaded from and saved to
            course: Completion state; created empty if not provided
            settings: Optional tunables
            clock: Source of the current local time
        """
        self.store = store
        self.settings = settings or TrackerSettings()
        self.course = course or CourseProgress(total_modules=self.settings.total_modules)
        self._clock = clock

        self.time_spent: dict[int, int] = {}
        self.videos: dict[str, VideoWatchState] = {}
        self.last_saved: str | None = None

        self.log = InteractionLog(self.settings.max_interactions, clock=clock)
        self.dwell = ModuleDwellTracker(self.log, self.time_spent, clock=clock)
        self.video = VideoWatchTracker(
            self.videos, self.settings.watch_session_gap_seconds, clock=clock
        )
        self.session = SessionLifecycle(self.log, self.time_spent, clock=clock)
        self.submissions = SubmissionBook()

        self._revision = 0
        self._saved_revision = 0

    @property
    def revision(self) -> int:
        """Counter bumped on every state mutation."""
        return self._revision

    @property
    def dirty(self) -> bool:
        """Whether there are changes not yet saved."""
        return self._revision != self._saved_revision

    def _touch(self) -> None:
        self._revision += 1

    def _check_module(self, module_id: int) -> None:
        """Reject ids outside 1..total_modules."""
        validate_module_id(module_id)
        total = self.course.total_modules
        if module_id > total:
            raise ValueError(f"Module id must be between 1 and {total}, got {module_id}")

    # Inbound events

    def session_start(
        self,
        user_agent: str | None = None,
        screen_resolution: str | None = None,
    ) -> None:
        self.session.start(user_agent=user_agent, screen_resolution=screen_resolution)
        self._touch()

    def session_end(self) -> int | None:
        duration = self.session.end()
        if duration is not None:
            self._touch()
        return duration

    def module_opened(self, module_id: int) -> None:
        """Start dwell timing for a module, closing any module already open."""
        self._check_module(module_id)
        self.dwell.start_module(module_id)
        self.course.visit(module_id, self._clock())
        self._touch()

    def module_closed(self, module_id: int | None = None) -> int | None:
        """Stop dwell timing; a no-op when no module is open."""
        spent = self.dwell.end_module(module_id)
        if spent is not None:
            self._touch()
        return spent

    def video_progress(
        self, video_id: str, current_time: float, duration: float
    ) -> VideoWatchState:
        if not str(video_id):
            raise ValueError("Video id must not be empty")
        state = self.video.track_progress(video_id, current_time, duration)
        self._touch()
        return state

    def assignment_submitted(
        self, module_id: int, kind: str, payload: dict[str, Any] | None = None
    ) -> None:
        """Log a submission and keep it as the module's latest.

        Raises:
            ValueError: If the module id is out of range or payload is not JSON-encodable
        """
        self._check_module(module_id)
        self.log.append(
            EventKind.ASSIGNMENT_SUBMIT,
            {
                "moduleId": module_id,
                "assignmentType": kind,
                "submissionData": payload or {},
                "timestamp": format_timestamp(self._clock()),
            },
        )
        self.submissions.record(module_id, kind, payload, self._clock())
        self._touch()

    def module_completed(self, module_id: int) -> None:
        """Record completion of a module and mark it completed."""
        self._check_module(module_id)
        self.course.mark_completed(module_id)
        self.log.append(
            EventKind.MODULE_COMPLETE,
            {
                "moduleId": module_id,
                "timestamp": format_timestamp(self._clock()),
                "timeSpent": self.time_spent.get(module_id, 0),
            },
        )
        self._touch()

    def toggle_completion(self, module_id: int) -> bool:
        """Flip a module's completion, logging when it becomes completed.

        Returns:
            The new completion state
        """
        self._check_module(module_id)
        if self.course.is_completed(module_id):
            self.course.mark_incomplete(module_id)
            self._touch()
            return False
        self.module_completed(module_id)
        return True

    def github_action(self, action: str, repo_url: str) -> None:
        self.log.append(
            EventKind.GITHUB_INTERACTION,
            {
                "action": action,
                "repoUrl": repo_url,
                "timestamp": format_timestamp(self._clock()),
            },
        )
        self._touch()

    # Outbound queries

    def _view(self) -> TrackerSnapshot:
        """Live snapshot sharing the tracker's containers (read-only use)."""
        return TrackerSnapshot(
            video_watch_time=self.videos,
            module_time_spent=self.time_spent,
            interactions=list(self.log),
            last_saved=self.last_saved,
        )

    def _analytics(self) -> AnalyticsEngine:
        return AnalyticsEngine(
            self._view(), self.course, clock=self._clock, submissions=self.submissions
        )

    def snapshot(self) -> TrackerSnapshot:
        """Independent copy of the current state."""
        return copy.deepcopy(self._view())

    def summary(self) -> ProgressSummary:
        return self._analytics().summary()

    def learning_patterns(self) -> LearningPatterns:
        return self._analytics().learning_patterns()

    def study_streak(self) -> StudyStreak:
        return self._analytics().study_streak()

    def module_progress(self, module_id: int) -> ModuleProgress:
        self._check_module(module_id)
        return self._analytics().module_progress(module_id)

    def export_snapshot(self) -> dict[str, Any]:
        return self._analytics().export()

    # Persistence

    def restore(self, snapshot: TrackerSnapshot) -> None:
        """Replace in-memory state with a snapshot, in place."""
        self.time_spent.clear()
        self.time_spent.update(snapshot.module_time_spent)
        self.videos.clear()
        self.videos.update(copy.deepcopy(snapshot.video_watch_time))
        self.log.clear()
        self.log.extend(snapshot.interactions)
        self.last_saved = snapshot.last_saved

    async def load(self) -> None:
        """Load state from the store, falling back to empty per field.

        Raises:
            StorageError: If the store cannot be read
        """
        raw_snapshot = await self.store.load(self.settings.snapshot_key)
        raw_progress = await self.store.load(self.settings.progress_key)
        raw_submissions = await self.store.load(self.settings.submissions_key)

        snapshot = TrackerSnapshot.from_dict(
            _decode(raw_snapshot, self.settings.snapshot_key),
            max_interactions=self.settings.max_interactions,
        )
        course = CourseProgress.from_dict(
            _decode(raw_progress, self.settings.progress_key),
            total_modules=self.settings.total_modules,
        )

        self.restore(snapshot)
        self.course.completed = course.completed
        self.course.current_module = course.current_module
        self.course.last_accessed = course.last_accessed
        self.submissions.latest = SubmissionBook.from_dict(
            _decode(raw_submissions, self.settings.submissions_key)
        ).latest
        self._saved_revision = self._revision

        logger.info(
            "Loaded tracker state: %d interactions, %d modules, %d videos",
            len(self.log),
            len(self.time_spent),
            len(self.videos),
        )

    async def save(self) -> None:
        """Write the snapshot, course progress and submissions to the store.

        Raises:
            StorageError: If the state cannot be encoded or the store cannot be
                written; in-memory state is unchanged
        """
        revision = self._revision
        saved_at = format_timestamp(self._clock())

        blob = self._view().to_dict()
        blob["lastSaved"] = saved_at
        try:
            encoded = {
                self.settings.snapshot_key: json.dumps(blob),
                self.settings.progress_key: json.dumps(self.course.to_dict()),
                self.settings.submissions_key: json.dumps(self.submissions.to_dict()),
            }
        except (TypeError, ValueError) as e:
            raise StorageError(f"Could not encode tracker state: {e}") from e

        for key, value in encoded.items():
            await self.store.save(key, value)

        self.last_saved = saved_at
        self._saved_revision = revision
        logger.info("Saved tracker state at %s (revision %d)", saved_at, revision)

    async def shutdown(self) -> bool:
        """Close open timers, end the session and make a final save.

        Best-effort: a storage failure is logged, not raised.

        Returns:
            True if the final save succeeded
        """
        self.module_closed()
        self.session_end()
        try:
            await self.save()
        except StorageError as e:
            logger.warning("Final save failed during shutdown: %s", e)
            return False
        return True


class Autosaver:
    """Periodically flushes a tracker to its store from an asyncio task."""

    def __init__(self, tracker: ProgressTracker, interval_seconds: float | None = None):
        """Initialize the autosaver.

        Args:
            tracker: Tracker to flush
            interval_seconds: Flush period; defaults to the tracker's setting
        """
        interval = (
            tracker.settings.autosave_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        if interval <= 0:
            raise ValueError(f"Autosave interval must be positive, got {interval}")
        self.tracker = tracker
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """Flush once if there are unsaved changes.

        Returns:
            False if the save failed (it is retried on the next tick)
        """
        if not self.tracker.dirty:
            return True
        try:
            await self.tracker.save()
        except StorageError as e:
            logger.warning("Autosave failed, will retry: %s", e)
            return False
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Unexpected autosave error")

    def start(self) -> None:
        """Start the background flush. Must be called with a running loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Autosave started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the background flush and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Autosave stopped")
