"""Capacity-bounded, append-only ledger of interactions."""

from __future__ import annotations

import copy
import json
from collections import deque
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator

from studytrack.core.types import (
    DEFAULT_MAX_INTERACTIONS,
    EventKind,
    InteractionRecord,
    format_timestamp,
)


class InteractionLog:
    """Sliding window over the most recent interactions.

    Appending past capacity evicts from the front; overflow is never an
    error. Filtering is left to consumers, which iterate the full sequence.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_INTERACTIONS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the log.

        Args:
            max_entries: Number of records to retain
            clock: Source of the current local time
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._clock = clock
        self._records: deque[InteractionRecord] = deque(maxlen=max_entries)

    def append(self, kind: EventKind | str, data: dict[str, Any]) -> InteractionRecord:
        """Record an interaction stamped with the current time.

        Args:
            kind: Interaction type
            data: JSON-native payload

        Returns:
            The appended record

        Raises:
            ValueError: If data cannot be encoded as JSON
        """
        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Interaction data must be JSON-encodable: {e}") from e

        record = InteractionRecord(
            type=kind,
            data=copy.deepcopy(dict(data)),
            timestamp=format_timestamp(self._clock()),
        )
        self._records.append(record)
        return record

    def extend(self, records: Iterable[InteractionRecord]) -> None:
        """Append existing records (e.g. from a snapshot), keeping the cap."""
        self._records.extend(records)

    def clear(self) -> None:
        self._records.clear()

    @property
    def records(self) -> tuple[InteractionRecord, ...]:
        """Retained records, oldest first."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InteractionRecord]:
        return iter(self._records)
