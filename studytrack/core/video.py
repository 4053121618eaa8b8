"""Per-video watch sessions and playback progress."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable

from studytrack.core.types import (
    VideoWatchState,
    WatchSession,
    format_timestamp,
    parse_timestamp,
    round_half_up,
)

logger = logging.getLogger(__name__)

# Ticks further apart than this start a new watch session
DEFAULT_SESSION_GAP_SECONDS = 60


def completion_percentage(current_time: float, duration: float) -> int | None:
    """Percentage of a video played, or None when it cannot be known.

    Returns None for a non-positive or non-finite duration so that NaN and
    infinity never reach stored state. Known values are clamped to 0-100.
    """
    if not math.isfinite(duration) or duration <= 0 or not math.isfinite(current_time):
        return None
    return min(100, max(0, round_half_up(current_time / duration * 100)))


class VideoWatchTracker:
    """Maintains VideoWatchState for every video seen."""

    def __init__(
        self,
        videos: dict[str, VideoWatchState] | None = None,
        session_gap_seconds: float = DEFAULT_SESSION_GAP_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker.

        Args:
            videos: Watch state keyed by video id, shared with the snapshot
            session_gap_seconds: Largest gap between ticks that still extends a session
            clock: Source of the current local time
        """
        self.videos = videos if videos is not None else {}
        self.session_gap = timedelta(seconds=session_gap_seconds)
        self._clock = clock

    def track_progress(
        self, video_id: str, current_time: float, duration: float
    ) -> VideoWatchState:
        """Record a playback tick.

        Updates position and completion percentage, then either extends the
        latest watch session or starts a new one if the previous tick was
        more than the session gap ago.

        Args:
            video_id: Video identifier
            current_time: Playback position in seconds
            duration: Video length in seconds

        Returns:
            The updated watch state
        """
        video_id = str(video_id)
        state = self.videos.get(video_id)
        if state is None:
            state = VideoWatchState()
            self.videos[video_id] = state

        position = current_time if math.isfinite(current_time) else state.last_position
        state.last_position = position

        percentage = completion_percentage(current_time, duration)
        if percentage is None:
            logger.debug(
                "Unknown completion for video %s (time=%s, duration=%s); keeping %d%%",
                video_id,
                current_time,
                duration,
                state.completion_percentage,
            )
        else:
            state.completion_percentage = percentage

        now = self._clock()
        stamp = format_timestamp(now)
        last = state.watch_sessions[-1] if state.watch_sessions else None

        if last is None or now - parse_timestamp(last.end) > self.session_gap:
            state.watch_sessions.append(
                WatchSession(start=stamp, end=stamp, start_time=position, end_time=position)
            )
        else:
            last.end = stamp
            last.end_time = position

        return state

    def get(self, video_id: str) -> VideoWatchState | None:
        return self.videos.get(str(video_id))
