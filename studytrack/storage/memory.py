"""In-memory store, used for tests and throwaway sessions."""

from __future__ import annotations

from studytrack.storage.base import DurableStore


class MemoryStore(DurableStore):
    """Dict-backed store. Contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def load(self, key: str) -> str | None:
        return self._data.get(key)

    async def save(self, key: str, blob: str) -> None:
        self._data[key] = blob

    def keys(self) -> list[str]:
        """Return the keys currently stored."""
        return list(self._data)
