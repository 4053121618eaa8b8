"""Process-wide learning session lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from studytrack.core.interaction_log import InteractionLog
from studytrack.core.types import EventKind, elapsed_ms, format_timestamp

logger = logging.getLogger(__name__)


class SessionLifecycle:
    """Brackets a learning session with session_start/session_end events.

    end() is expected once per process, typically from a termination hook
    that is not guaranteed to run. Losing the final session_end is
    acceptable.
    """

    def __init__(
        self,
        log: InteractionLog,
        time_spent: dict[int, int],
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the lifecycle.

        Args:
            log: Interaction log receiving the bracketing events
            time_spent: Module dwell accumulator reported at session end
            clock: Source of the current local time
        """
        self.log = log
        self.time_spent = time_spent
        self._clock = clock
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.started_at is not None and self.ended_at is None

    def start(
        self,
        user_agent: str | None = None,
        screen_resolution: str | None = None,
    ) -> None:
        """Mark the session start.

        Args:
            user_agent: Client user agent, as reported by the caller
            screen_resolution: Client screen size (e.g. "1920x1080")
        """
        if self.is_active:
            logger.debug("Session already started at %s", self.started_at)
            return

        self.started_at = self._clock()
        self.ended_at = None
        self.log.append(
            EventKind.SESSION_START,
            {
                "timestamp": format_timestamp(self.started_at),
                "userAgent": user_agent,
                "screenResolution": screen_resolution,
            },
        )

    def end(self) -> int | None:
        """Mark the session end.

        Returns:
            Session duration in milliseconds, or None if no session is active
        """
        if not self.is_active:
            logger.debug("end() called with no active session; ignoring")
            return None

        self.ended_at = self._clock()
        duration = elapsed_ms(self.started_at, self.ended_at)
        self.log.append(
            EventKind.SESSION_END,
            {
                "timestamp": format_timestamp(self.ended_at),
                "duration": duration,
                "moduleTimeSpent": {str(k): v for k, v in self.time_spent.items()},
            },
        )
        return duration
