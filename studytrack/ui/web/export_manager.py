"""Export functionality for StudyTrack."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from studytrack.core.types import InteractionRecord

CSV_FIELDS = ["timestamp", "type", "moduleId", "data"]


class ProgressExporter:
    """Write progress exports to a directory."""

    def __init__(self, export_dir: Path | str = "./exports"):
        self.export_dir = Path(export_dir)

    def _target(self, stem: str, suffix: str) -> Path:
        """Pick a file path under the export dir, avoiding overwrites."""
        self.export_dir.mkdir(parents=True, exist_ok=True)
        path = self.export_dir / f"{stem}{suffix}"
        counter = 1
        while path.exists():
            path = self.export_dir / f"{stem}-{counter}{suffix}"
            counter += 1
        return path

    def export_json(self, document: dict[str, Any]) -> Path:
        """Export a full progress document as JSON."""
        date_part = datetime.now().strftime("%Y-%m-%d")
        filepath = self._target(f"studytrack-progress-{date_part}", ".json")

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)

        return filepath

    def export_interactions_csv(self, interactions: Iterable[InteractionRecord]) -> Path:
        """Export the interaction log as CSV, one row per interaction."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self._target(f"studytrack-interactions-{timestamp}", ".csv")

        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for record in interactions:
                writer.writerow(
                    {
                        "timestamp": record.timestamp,
                        "type": record.kind,
                        "moduleId": record.module_id if record.module_id is not None else "",
                        "data": json.dumps(record.data, sort_keys=True),
                    }
                )

        return filepath

    def list_exports(self) -> list[dict[str, Any]]:
        """List all exported files, newest first."""
        if not self.export_dir.exists():
            return []

        exports = []
        for filepath in self.export_dir.glob("*"):
            if filepath.is_file():
                stat = filepath.stat()
                exports.append(
                    {
                        "filename": filepath.name,
                        "path": str(filepath),
                        "size": stat.st_size,
                        "created": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                    }
                )
        return sorted(exports, key=lambda x: x["created"], reverse=True)
