"""Latest assignment submission per module.

Submissions are kept outside the interaction log, so they survive after
their assignment_submit records have been evicted from it.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from studytrack.core.types import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    """One module's most recent submission.

    Attributes:
        module_id: Module the submission belongs to
        submitted_at: When it was submitted (ISO-8601)
        data: Submission fields (e.g. url or text) plus assignmentType
    """

    module_id: int
    submitted_at: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.data, "submittedAt": self.submitted_at, "moduleId": self.module_id}

    @classmethod
    def from_dict(cls, module_id: int, data: dict[str, Any]) -> Submission:
        """Create from a stored entry.

        Raises:
            ValueError: If submittedAt is missing or malformed
        """
        submitted_at = data.get("submittedAt")
        if not isinstance(submitted_at, str):
            raise ValueError("submission needs a string 'submittedAt'")
        parse_timestamp(submitted_at)
        fields = {k: v for k, v in data.items() if k not in ("submittedAt", "moduleId")}
        return cls(module_id=module_id, submitted_at=submitted_at, data=fields)


@dataclass
class SubmissionBook:
    """Latest submission for each module, keyed by module id."""

    latest: dict[int, Submission] = field(default_factory=dict)

    def record(
        self,
        module_id: int,
        kind: str,
        payload: dict[str, Any] | None,
        when: datetime,
    ) -> Submission:
        """Store a submission, replacing any earlier one for the module."""
        submission = Submission(
            module_id=module_id,
            submitted_at=format_timestamp(when),
            data={**copy.deepcopy(payload or {}), "assignmentType": kind},
        )
        self.latest[module_id] = submission
        return submission

    def get(self, module_id: int) -> Submission | None:
        return self.latest.get(module_id)

    def __len__(self) -> int:
        return len(self.latest)

    def to_dict(self) -> dict[str, Any]:
        return {str(module_id): s.to_dict() for module_id, s in self.latest.items()}

    @classmethod
    def from_dict(cls, data: Any) -> SubmissionBook:
        """Create from a decoded blob, dropping malformed entries."""
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring submissions of type %s", type(data).__name__)
            return cls()

        latest: dict[int, Submission] = {}
        for key, entry in data.items():
            try:
                module_id = int(key)
                if module_id <= 0 or not isinstance(entry, dict):
                    raise ValueError(f"bad entry for module {key!r}")
                latest[module_id] = Submission.from_dict(module_id, entry)
            except (TypeError, ValueError) as e:
                logger.warning("Dropping malformed submission: %s", e)
        return cls(latest=latest)
