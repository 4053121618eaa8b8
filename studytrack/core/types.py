"""Data model for tracker state and its JSON representation.

The camelCase keys produced by ``to_dict`` match the blob the browser
dashboard kept in localStorage, so an exported browser snapshot can be
loaded as-is.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Default cap on retained interactions
DEFAULT_MAX_INTERACTIONS = 1000


class EventKind(str, Enum):
    """Kinds of interaction recorded in the log."""

    SESSION_START = "session_start"
    SESSION_END = "session_end"
    MODULE_START = "module_start"
    MODULE_END = "module_end"
    MODULE_COMPLETE = "module_complete"
    ASSIGNMENT_SUBMIT = "assignment_submit"
    GITHUB_INTERACTION = "github_interaction"


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 string with millisecond precision."""
    return value.isoformat(timespec="milliseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    Accepts the trailing ``Z`` that browsers emit. Aware values are converted
    to local time so hour and calendar-day classification match the learner's
    wall clock.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two datetimes, never negative."""
    return max(0, (end - start) // timedelta(milliseconds=1))


def round_half_up(value: float) -> int:
    """Round like a browser's Math.round (halves go up, not to even)."""
    return math.floor(value + 0.5)


def _as_number(value: Any, default: float = 0) -> float:
    """Coerce a stored value to a finite number, or return default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return value


def _coerce_kind(value: str) -> EventKind | str:
    """Map a stored type string to EventKind, keeping unknown kinds verbatim."""
    try:
        return EventKind(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class InteractionRecord:
    """A single timestamped event in the interaction log.

    Attributes:
        type: Kind of interaction (unknown kinds from old snapshots stay strings)
        data: JSON-native payload; keys are strings
        timestamp: ISO-8601 time the record was appended
    """

    type: EventKind | str
    data: dict[str, Any]
    timestamp: str

    @property
    def kind(self) -> str:
        """The type as a plain string."""
        return self.type.value if isinstance(self.type, EventKind) else self.type

    @property
    def module_id(self) -> int | None:
        """The moduleId carried in data, if any."""
        module_id = self.data.get("moduleId")
        if isinstance(module_id, bool) or not isinstance(module_id, int):
            return None
        return module_id

    @property
    def occurred_at(self) -> datetime:
        """The timestamp as a naive local datetime."""
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"type": self.kind, "data": self.data, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InteractionRecord:
        """Create from dictionary.

        Raises:
            ValueError: If type or timestamp is missing or malformed
        """
        kind = data.get("type")
        timestamp = data.get("timestamp")
        if not isinstance(kind, str) or not isinstance(timestamp, str):
            raise ValueError("interaction needs string 'type' and 'timestamp'")
        parse_timestamp(timestamp)
        payload = data.get("data")
        return cls(
            type=_coerce_kind(kind),
            data=payload if isinstance(payload, dict) else {},
            timestamp=timestamp,
        )


@dataclass
class WatchSession:
    """A contiguous interval of video playback.

    Attributes:
        start: Wall-clock time the interval began (ISO-8601)
        end: Wall-clock time of the latest tick in the interval (ISO-8601)
        start_time: Playback position at the first tick, in seconds
        end_time: Playback position at the latest tick, in seconds
    """

    start: str
    end: str
    start_time: float
    end_time: float

    @property
    def span_seconds(self) -> float:
        """Playback seconds covered by this interval."""
        return max(0.0, self.end_time - self.start_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WatchSession:
        start = data.get("start")
        end = data.get("end")
        if not isinstance(start, str) or not isinstance(end, str):
            raise ValueError("watch session needs string 'start' and 'end'")
        parse_timestamp(start)
        parse_timestamp(end)
        return cls(
            start=start,
            end=end,
            start_time=_as_number(data.get("startTime")),
            end_time=_as_number(data.get("endTime")),
        )


@dataclass
class VideoWatchState:
    """Watch history and last-known playback state for one video.

    Attributes:
        total_watched: Reserved; stored and round-tripped but not derived
        completion_percentage: round(currentTime / duration * 100), 0-100
        last_position: Playback position of the latest tick, in seconds
        watch_sessions: Playback intervals in chronological order
    """

    total_watched: float = 0
    completion_percentage: int = 0
    last_position: float = 0
    watch_sessions: list[WatchSession] = field(default_factory=list)

    def watched_seconds(self) -> float:
        """Sum of playback seconds over all watch sessions."""
        return sum(session.span_seconds for session in self.watch_sessions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWatched": self.total_watched,
            "completionPercentage": self.completion_percentage,
            "lastPosition": self.last_position,
            "watchSessions": [s.to_dict() for s in self.watch_sessions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VideoWatchState:
        sessions = []
        for raw in data.get("watchSessions") or []:
            try:
                sessions.append(WatchSession.from_dict(raw))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Dropping malformed watch session: %s", e)

        percentage = _as_number(data.get("completionPercentage"))
        return cls(
            total_watched=_as_number(data.get("totalWatched")),
            completion_percentage=int(min(100, max(0, percentage))),
            last_position=_as_number(data.get("lastPosition")),
            watch_sessions=sessions,
        )


@dataclass
class TrackerSnapshot:
    """Complete persisted state of the tracker.

    Every field is independently optional when loading; absent or malformed
    fields fall back to empty values.

    Attributes:
        video_watch_time: Per-video watch state, keyed by video id
        module_time_spent: Accumulated dwell milliseconds, keyed by module id
        interactions: Interaction log, oldest first
        last_saved: Time of the last successful save (ISO-8601)
    """

    video_watch_time: dict[str, VideoWatchState] = field(default_factory=dict)
    module_time_spent: dict[int, int] = field(default_factory=dict)
    interactions: list[InteractionRecord] = field(default_factory=list)
    last_saved: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON-shaped blob."""
        return {
            "videoWatchTime": {
                video_id: state.to_dict() for video_id, state in self.video_watch_time.items()
            },
            "moduleTimeSpent": {
                str(module_id): ms for module_id, ms in self.module_time_spent.items()
            },
            "interactions": [record.to_dict() for record in self.interactions],
            "lastSaved": self.last_saved,
        }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        max_interactions: int = DEFAULT_MAX_INTERACTIONS,
    ) -> TrackerSnapshot:
        """Create a snapshot from a decoded blob, tolerating partial state.

        Args:
            data: Decoded JSON (anything other than a dict yields an empty snapshot)
            max_interactions: Keep only this many of the newest interactions

        Returns:
            The recovered snapshot
        """
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring snapshot of type %s", type(data).__name__)
            return cls()

        return cls(
            video_watch_time=_parse_videos(data.get("videoWatchTime")),
            module_time_spent=_parse_module_times(data.get("moduleTimeSpent")),
            interactions=_parse_interactions(data.get("interactions"))[-max_interactions:],
            last_saved=data.get("lastSaved") if isinstance(data.get("lastSaved"), str) else None,
        )


def _parse_videos(raw: Any) -> dict[str, VideoWatchState]:
    if not isinstance(raw, dict):
        return {}
    videos = {}
    for video_id, state in raw.items():
        if not isinstance(state, dict):
            logger.warning("Dropping malformed video state for %s", video_id)
            continue
        videos[str(video_id)] = VideoWatchState.from_dict(state)
    return videos


def _parse_module_times(raw: Any) -> dict[int, int]:
    if not isinstance(raw, dict):
        return {}
    times = {}
    for module_id, ms in raw.items():
        try:
            key = int(module_id)
        except (TypeError, ValueError):
            logger.warning("Dropping time for non-integer module id %r", module_id)
            continue
        times[key] = int(_as_number(ms))
    return times


def _parse_interactions(raw: Any) -> list[InteractionRecord]:
    if not isinstance(raw, list):
        return []
    records = []
    for item in raw:
        try:
            records.append(InteractionRecord.from_dict(item))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Dropping malformed interaction: %s", e)
    return records
