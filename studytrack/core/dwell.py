"""Per-module dwell timer.

Two states: idle (no module open) and tracking one module since a start
time. Opening a module while another is tracked closes the previous one
first, booking the elapsed time under the module that was actually open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from studytrack.core.interaction_log import InteractionLog
from studytrack.core.types import EventKind, elapsed_ms, format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DwellSession:
    """The module currently open and when it was opened."""

    module_id: int
    started_at: datetime


def validate_module_id(module_id: int) -> int:
    """Check that a module id is a positive integer.

    Raises:
        ValueError: If the id is not a positive integer
    """
    if isinstance(module_id, bool) or not isinstance(module_id, int) or module_id <= 0:
        raise ValueError(f"Module id must be a positive integer, got {module_id!r}")
    return module_id


class ModuleDwellTracker:
    """Accumulates wall-clock time spent with each module open."""

    def __init__(
        self,
        log: InteractionLog,
        time_spent: dict[int, int] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker.

        Args:
            log: Interaction log receiving module_start/module_end events
            time_spent: Accumulator keyed by module id, shared with the snapshot
            clock: Source of the current local time
        """
        self.log = log
        self.time_spent = time_spent if time_spent is not None else {}
        self._clock = clock
        self._active: DwellSession | None = None

    @property
    def active(self) -> DwellSession | None:
        return self._active

    @property
    def current_module(self) -> int | None:
        return self._active.module_id if self._active else None

    @property
    def is_tracking(self) -> bool:
        return self._active is not None

    def start_module(self, module_id: int) -> None:
        """Start timing a module, closing any module already open."""
        validate_module_id(module_id)
        if self._active is not None:
            self.end_module()

        now = self._clock()
        self._active = DwellSession(module_id=module_id, started_at=now)
        self.log.append(
            EventKind.MODULE_START,
            {"moduleId": module_id, "timestamp": format_timestamp(now)},
        )

    def end_module(self, module_id: int | None = None) -> int | None:
        """Stop timing the open module.

        The time is booked under the module that is actually open; a
        mismatching module_id is logged and otherwise ignored.

        Args:
            module_id: Module the caller believes is open (optional)

        Returns:
            Milliseconds added, or None if no module was open
        """
        if self._active is None:
            logger.debug("end_module(%s) with no module open; ignoring", module_id)
            return None

        active = self._active
        if module_id is not None and module_id != active.module_id:
            logger.debug(
                "end_module(%s) while module %s is open; closing %s",
                module_id,
                active.module_id,
                active.module_id,
            )

        now = self._clock()
        spent = elapsed_ms(active.started_at, now)
        total = self.time_spent.get(active.module_id, 0) + spent
        self.time_spent[active.module_id] = total

        self.log.append(
            EventKind.MODULE_END,
            {
                "moduleId": active.module_id,
                "timestamp": format_timestamp(now),
                "timeSpent": spent,
                "totalTime": total,
            },
        )
        self._active = None
        return spent
