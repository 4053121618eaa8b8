"""Durable key-value storage interface for tracker state."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a store cannot read or write a blob."""


class DurableStore(ABC):
    """Key-value persistence surface holding serialized tracker state.

    Keys are opaque strings and blobs are JSON text. Implementations must
    raise StorageError (chaining the underlying error) on I/O failure and
    return None from load() when the key has never been written.
    """

    @abstractmethod
    async def load(self, key: str) -> str | None:
        """Load the blob stored under key, or None if absent."""

    @abstractmethod
    async def save(self, key: str, blob: str) -> None:
        """Store blob under key, replacing any previous value."""

    async def close(self) -> None:
        """Release any resources held by the store."""
