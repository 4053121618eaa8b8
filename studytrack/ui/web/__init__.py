"""HTTP API for the browser dashboard."""

from studytrack.ui.web.app import create_app, run_web_ui
from studytrack.ui.web.export_manager import ProgressExporter

__all__ = ["create_app", "run_web_ui", "ProgressExporter"]
