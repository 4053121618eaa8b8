"""File-backed store writing one JSON file per key."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from studytrack.storage.base import DurableStore, StorageError

logger = logging.getLogger(__name__)

# Characters allowed in a key-derived filename
_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore(DurableStore):
    """Stores each key as ``<directory>/<key>.json``.

    Writes go through a temp file and an atomic rename so that an interrupted
    save never leaves a truncated blob behind.
    """

    def __init__(self, directory: Path):
        """Initialize the store.

        Args:
            directory: Directory holding the JSON files (created on first save)
        """
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        """Get the file path for a key."""
        if not key:
            raise ValueError("Storage key must not be empty")
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    async def load(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def save(self, key: str, blob: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(blob, encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to write {path}: {e}") from e

        logger.debug("Wrote %d bytes to %s", len(blob), path)
