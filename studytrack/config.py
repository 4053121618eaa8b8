"""Configuration management for StudyTrack.

Handles loading, saving, and validating configuration from TOML files.
Configuration is stored at ~/.studytrack/config.toml by default.

Example configuration:
    [tracker]
    total_modules = 12
    max_interactions = 1000
    watch_session_gap_seconds = 60
    autosave_interval_seconds = 30

    [storage]
    backend = "json"  # "json" | "sqlite" | "memory"
    directory = "~/.studytrack/data"

    [web]
    host = "127.0.0.1"
    port = 8080

    [logging]
    level = "WARNING"
"""

from __future__ import annotations

import sys
import warnings
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from studytrack.core.tracker import (
    PROGRESS_KEY,
    SNAPSHOT_KEY,
    SUBMISSIONS_KEY,
    TrackerSettings,
)
from studytrack.storage import DurableStore, JsonFileStore, MemoryStore, SqliteStore
from studytrack.storage.sqlite import SqliteStoreConfig

# Python 3.11+ has tomllib in stdlib (read-only)
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


class StorageBackend(Enum):
    """Available storage backends."""

    JSON = "json"
    SQLITE = "sqlite"
    MEMORY = "memory"


@dataclass
class TrackerConfig:
    """Configuration for the tracker."""

    total_modules: int = 12
    max_interactions: int = 1000
    watch_session_gap_seconds: float = 60
    autosave_interval_seconds: float = 30


@dataclass
class StorageConfig:
    """Configuration for snapshot persistence."""

    backend: StorageBackend = StorageBackend.JSON
    directory: str = "~/.studytrack/data"
    snapshot_key: str = SNAPSHOT_KEY
    progress_key: str = PROGRESS_KEY
    submissions_key: str = SUBMISSIONS_KEY

    @property
    def path(self) -> Path:
        """Expanded storage directory."""
        return Path(self.directory).expanduser()


@dataclass
class WebConfig:
    """Configuration for the local HTTP API."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class ExportConfig:
    """Configuration for exported files."""

    directory: str = "~/.studytrack/exports"

    @property
    def path(self) -> Path:
        return Path(self.directory).expanduser()


@dataclass
class LoggingConfig:
    """Configuration for log output."""

    level: str = "WARNING"


@dataclass
class StudyTrackConfig:
    """Complete StudyTrack configuration."""

    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    web: WebConfig = field(default_factory=WebConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> StudyTrackConfig:
        """Create default configuration."""
        return cls()

    def tracker_settings(self) -> TrackerSettings:
        """Build the tracker tunables from this configuration."""
        return TrackerSettings(
            total_modules=self.tracker.total_modules,
            max_interactions=self.tracker.max_interactions,
            watch_session_gap_seconds=self.tracker.watch_session_gap_seconds,
            autosave_interval_seconds=self.tracker.autosave_interval_seconds,
            snapshot_key=self.storage.snapshot_key,
            progress_key=self.storage.progress_key,
            submissions_key=self.storage.submissions_key,
        )


# Default configuration file paths
DEFAULT_CONFIG_DIR = Path.home() / ".studytrack"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def ensure_config_dir() -> Path:
    """Ensure the configuration directory exists.

    Returns:
        Path to the configuration directory
    """
    DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return DEFAULT_CONFIG_DIR


def _positive(value: Any, default: float) -> Any:
    """Return value if it is a positive number, else default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return value


def _parse_tracker_config(data: dict[str, Any]) -> TrackerConfig:
    """Parse tracker configuration from dict."""
    return TrackerConfig(
        total_modules=int(_positive(data.get("total_modules"), 12)),
        max_interactions=int(_positive(data.get("max_interactions"), 1000)),
        watch_session_gap_seconds=_positive(data.get("watch_session_gap_seconds"), 60),
        autosave_interval_seconds=_positive(data.get("autosave_interval_seconds"), 30),
    )


def _parse_storage_config(data: dict[str, Any]) -> StorageConfig:
    """Parse storage configuration from dict."""
    try:
        backend = StorageBackend(data.get("backend", "json"))
    except ValueError:
        backend = StorageBackend.JSON

    return StorageConfig(
        backend=backend,
        directory=data.get("directory", "~/.studytrack/data"),
        snapshot_key=data.get("snapshot_key", SNAPSHOT_KEY),
        progress_key=data.get("progress_key", PROGRESS_KEY),
        submissions_key=data.get("submissions_key", SUBMISSIONS_KEY),
    )


def _parse_web_config(data: dict[str, Any]) -> WebConfig:
    """Parse web configuration from dict."""
    return WebConfig(
        host=data.get("host", "127.0.0.1"),
        port=int(_positive(data.get("port"), 8080)),
    )


def _parse_export_config(data: dict[str, Any]) -> ExportConfig:
    """Parse export configuration from dict."""
    return ExportConfig(directory=data.get("directory", "~/.studytrack/exports"))


def _parse_logging_config(data: dict[str, Any]) -> LoggingConfig:
    """Parse logging configuration from dict."""
    level = str(data.get("level", "WARNING")).upper()
    if level not in _LOG_LEVELS:
        level = "WARNING"
    return LoggingConfig(level=level)


def load_config(config_path: Path | None = None) -> StudyTrackConfig:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. Uses default if not provided.

    Returns:
        Loaded configuration, or default if file doesn't exist.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        return StudyTrackConfig.default()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        warnings.warn(f"Failed to load config from {path}: {e}")
        return StudyTrackConfig.default()

    return StudyTrackConfig(
        tracker=_parse_tracker_config(data.get("tracker", {})),
        storage=_parse_storage_config(data.get("storage", {})),
        web=_parse_web_config(data.get("web", {})),
        export=_parse_export_config(data.get("export", {})),
        logging=_parse_logging_config(data.get("logging", {})),
    )


def _format_toml_value(value: Any) -> str:
    """Format a Python value as TOML."""
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, Enum):
        return f'"{value.value}"'
    else:
        return f'"{value}"'


def save_config(config: StudyTrackConfig, config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration to save
        config_path: Path to config file. Uses default if not provided.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# StudyTrack Configuration",
        "# Generated by studytrack config command",
        "",
        "[tracker]",
        f"total_modules = {config.tracker.total_modules}",
        f"max_interactions = {config.tracker.max_interactions}",
        f"watch_session_gap_seconds = {config.tracker.watch_session_gap_seconds}",
        f"autosave_interval_seconds = {config.tracker.autosave_interval_seconds}",
        "",
        "[storage]",
        f"backend = {_format_toml_value(config.storage.backend)}",
        f"directory = {_format_toml_value(config.storage.directory)}",
        f"snapshot_key = {_format_toml_value(config.storage.snapshot_key)}",
        f"progress_key = {_format_toml_value(config.storage.progress_key)}",
        f"submissions_key = {_format_toml_value(config.storage.submissions_key)}",
        "",
        "[web]",
        f"host = {_format_toml_value(config.web.host)}",
        f"port = {config.web.port}",
        "",
        "[export]",
        f"directory = {_format_toml_value(config.export.directory)}",
        "",
        "[logging]",
        f"level = {_format_toml_value(config.logging.level)}",
        "",
    ]

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def generate_default_config() -> str:
    """Generate default configuration as TOML string.

    Returns:
        Default configuration in TOML format
    """
    return """# StudyTrack Configuration
# Copy this file to ~/.studytrack/config.toml and customize

[tracker]
# Number of modules in the course
total_modules = 12

# Interactions kept in the log (oldest are dropped first)
max_interactions = 1000

# Video ticks further apart than this start a new watch session
watch_session_gap_seconds = 60

# How often tracker state is flushed to storage
autosave_interval_seconds = 30

[storage]
# Backend: "json" (one file per key), "sqlite", or "memory"
backend = "json"

# Directory for stored snapshots
directory = "~/.studytrack/data"

# Keys the snapshot, course progress and submissions are stored under
snapshot_key = "progressTracking"
progress_key = "userProgress"
submissions_key = "submissions"

[web]
# Address for `studytrack serve`
host = "127.0.0.1"
port = 8080

[export]
# Where exported JSON/CSV files are written
directory = "~/.studytrack/exports"

[logging]
# DEBUG, INFO, WARNING, or ERROR
level = "WARNING"
"""


def build_store(config: StudyTrackConfig) -> DurableStore:
    """Construct the storage backend named in the configuration."""
    backend = config.storage.backend
    if backend == StorageBackend.MEMORY:
        return MemoryStore()
    if backend == StorageBackend.SQLITE:
        return SqliteStore(SqliteStoreConfig(db_path=config.storage.path / "studytrack.db"))
    return JsonFileStore(config.storage.path)


# Global config instance (lazy loaded)
_config: StudyTrackConfig | None = None


def get_config() -> StudyTrackConfig:
    """Get the global configuration instance.

    Loads from file on first call, caches thereafter.

    Returns:
        The global configuration
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> StudyTrackConfig:
    """Reload configuration from file.

    Returns:
        The reloaded configuration
    """
    global _config
    _config = load_config()
    return _config


def set_config(config: StudyTrackConfig) -> None:
    """Set the global configuration instance.

    Useful for testing or programmatic configuration.

    Args:
        config: Configuration to set
    """
    global _config
    _config = config
