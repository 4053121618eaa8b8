"""SQLite-backed key-value store.

All blobs live in a single ``kv_store`` table in
~/.studytrack/data/studytrack.db by default.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from studytrack.storage.base import DurableStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".studytrack" / "data" / "studytrack.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


@dataclass(frozen=True)
class SqliteStoreConfig:
    """Configuration for the SQLite store.

    Attributes:
        db_path: Path to the SQLite database file
        busy_timeout: Timeout in milliseconds for busy connections
        journal_mode: SQLite journal mode (WAL recommended)
    """

    db_path: Path = DEFAULT_DB_PATH
    busy_timeout: int = 5000
    journal_mode: str = "WAL"


class SqliteStore(DurableStore):
    """Durable store over one SQLite table, accessed via aiosqlite.

    The connection is opened lazily on first use and kept until close().
    """

    def __init__(self, config: SqliteStoreConfig | None = None):
        self.config = config or SqliteStoreConfig()
        self._connection: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        """Open the connection and apply the schema if needed."""
        if self._connection is not None:
            return self._connection

        try:
            self.config.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = await aiosqlite.connect(
                self.config.db_path,
                timeout=self.config.busy_timeout / 1000.0,
            )
            await connection.execute(f"PRAGMA journal_mode={self.config.journal_mode}")
            await connection.execute(f"PRAGMA busy_timeout={self.config.busy_timeout}")
            await connection.execute(SCHEMA_SQL)
            await connection.commit()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open {self.config.db_path}: {e}") from e

        self._connection = connection
        logger.info("SQLite store opened: %s", self.config.db_path)
        return connection

    async def load(self, key: str) -> str | None:
        connection = await self._connect()
        try:
            async with connection.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read key {key!r}: {e}") from e
        return row[0] if row else None

    async def save(self, key: str, blob: str) -> None:
        connection = await self._connect()
        try:
            await connection.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, blob, datetime.now().isoformat()),
            )
            await connection.commit()
        except sqlite3.Error as e:
            await connection.rollback()
            raise StorageError(f"Failed to write key {key!r}: {e}") from e

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("SQLite store closed")
