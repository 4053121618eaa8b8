"""Course completion state: which modules the learner has finished."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from studytrack.core.types import format_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_MODULES = 12


@dataclass
class CourseProgress:
    """Completed modules and the learner's position in the course.

    The module count comes from the catalog and is not persisted.

    Attributes:
        completed: Completed module ids, in completion order
        current_module: Module most recently opened
        last_accessed: When a module was last opened (ISO-8601)
        total_modules: Number of modules in the course
    """

    completed: list[int] = field(default_factory=list)
    current_module: int = 1
    last_accessed: str | None = None
    total_modules: int = DEFAULT_TOTAL_MODULES

    def is_completed(self, module_id: int) -> bool:
        return module_id in self.completed

    def mark_completed(self, module_id: int) -> bool:
        """Mark a module completed.

        Returns:
            True if the module was not already completed
        """
        if module_id in self.completed:
            return False
        self.completed.append(module_id)
        return True

    def mark_incomplete(self, module_id: int) -> bool:
        """Remove a module from the completed list.

        Returns:
            True if the module had been completed
        """
        if module_id not in self.completed:
            return False
        self.completed = [m for m in self.completed if m != module_id]
        return True

    def toggle(self, module_id: int) -> bool:
        """Flip completion for a module and return the new state."""
        if self.mark_completed(module_id):
            return True
        self.mark_incomplete(module_id)
        return False

    def visit(self, module_id: int, when: datetime) -> None:
        """Record that a module was opened."""
        self.current_module = module_id
        self.last_accessed = format_timestamp(when)

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": list(self.completed),
            "currentModule": self.current_module,
            "lastAccessed": self.last_accessed,
        }

    @classmethod
    def from_dict(
        cls, data: Any, total_modules: int = DEFAULT_TOTAL_MODULES
    ) -> CourseProgress:
        """Create from a decoded blob, substituting defaults for bad fields."""
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring course progress of type %s", type(data).__name__)
            return cls(total_modules=total_modules)

        raw_completed = data.get("completed")
        completed: list[int] = []
        for module_id in raw_completed if isinstance(raw_completed, list) else []:
            if isinstance(module_id, int) and not isinstance(module_id, bool):
                if module_id not in completed:
                    completed.append(module_id)
            else:
                logger.warning("Dropping non-integer completed module %r", module_id)

        current = data.get("currentModule")
        if isinstance(current, bool) or not isinstance(current, int) or current <= 0:
            current = 1
        last_accessed = data.get("lastAccessed")
        return cls(
            completed=completed,
            current_module=current,
            last_accessed=last_accessed if isinstance(last_accessed, str) else None,
            total_modules=total_modules,
        )
