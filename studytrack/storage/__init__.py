"""Durable storage backends for tracker snapshots.

Usage:
    from studytrack.storage import JsonFileStore

    store = JsonFileStore(Path("~/.studytrack/data").expanduser())
    await store.save("progressTracking", blob)
    blob = await store.load("progressTracking")
"""

from studytrack.storage.base import DurableStore, StorageError
from studytrack.storage.json_file import JsonFileStore
from studytrack.storage.memory import MemoryStore
from studytrack.storage.sqlite import SqliteStore, SqliteStoreConfig

__all__ = [
    "DurableStore",
    "StorageError",
    "MemoryStore",
    "JsonFileStore",
    "SqliteStore",
    "SqliteStoreConfig",
]
