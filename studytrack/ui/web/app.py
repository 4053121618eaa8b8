"""FastAPI app hosting a learner's progress tracker.

The browser dashboard posts UI events here and reads back analytics. One
app serves one tracker; the tracker is passed in by the caller.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path as FilePath
from typing import Annotated, Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Path, Request
from fastapi.responses import JSONResponse

from studytrack.core.tracker import Autosaver, ProgressTracker
from studytrack.storage.base import StorageError
from studytrack.ui.web.export_manager import ProgressExporter
from studytrack.ui.web.schemas import (
    AssignmentSubmission,
    GitHubActionRequest,
    SessionStartRequest,
    VideoProgressRequest,
)

logger = logging.getLogger(__name__)

ModuleId = Annotated[int, Path(gt=0, description="Course module id")]


def _tracker(request: Request) -> ProgressTracker:
    return request.app.state.tracker


def create_app(
    tracker: ProgressTracker,
    exporter: ProgressExporter | None = None,
    autosave: bool = True,
) -> FastAPI:
    """Build the API around an existing tracker.

    On startup the tracker is loaded and a session is started; on shutdown
    the tracker is shut down (closing the open module, ending the session
    and saving).

    Args:
        tracker: Tracker owned by the caller
        exporter: Where export endpoints write files
        autosave: Whether to run the periodic background flush
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await tracker.load()
        except StorageError as e:
            logger.warning("Starting with empty state, load failed: %s", e)
        tracker.session_start()

        saver = Autosaver(tracker) if autosave else None
        if saver:
            saver.start()
        try:
            yield
        finally:
            if saver:
                await saver.stop()
            await tracker.shutdown()
            await tracker.store.close()

    app = FastAPI(title="StudyTrack", lifespan=lifespan)
    app.state.tracker = tracker
    app.state.exporter = exporter or ProgressExporter()

    # ===== Session =====

    @app.post("/api/session/start")
    async def session_start(request: Request, body: SessionStartRequest) -> dict[str, Any]:
        """Start a learning session (a no-op if one is already active)."""
        _tracker(request).session_start(
            user_agent=body.userAgent, screen_resolution=body.screenResolution
        )
        return {"status": "started"}

    @app.post("/api/session/end")
    async def session_end(request: Request) -> dict[str, Any]:
        """End the learning session."""
        duration = _tracker(request).session_end()
        return {"status": "ended" if duration is not None else "inactive", "duration": duration}

    # ===== Modules =====

    @app.post("/api/modules/{module_id}/open")
    async def module_open(request: Request, module_id: ModuleId) -> dict[str, Any]:
        _tracker(request).module_opened(module_id)
        return {"status": "tracking", "moduleId": module_id}

    @app.post("/api/modules/{module_id}/close")
    async def module_close(request: Request, module_id: ModuleId) -> dict[str, Any]:
        spent = _tracker(request).module_closed(module_id)
        return {"status": "closed" if spent is not None else "idle", "timeSpent": spent}

    @app.post("/api/modules/{module_id}/complete")
    async def module_complete(request: Request, module_id: ModuleId) -> dict[str, Any]:
        _tracker(request).module_completed(module_id)
        return {"moduleId": module_id, "completed": True}

    @app.post("/api/modules/{module_id}/toggle")
    async def module_toggle(request: Request, module_id: ModuleId) -> dict[str, Any]:
        completed = _tracker(request).toggle_completion(module_id)
        return {"moduleId": module_id, "completed": completed}

    @app.post("/api/modules/{module_id}/assignments")
    async def submit_assignment(
        request: Request,
        body: AssignmentSubmission,
        module_id: ModuleId,
    ) -> dict[str, Any]:
        """Record a submission; submitting also completes the module."""
        tracker = _tracker(request)
        tracker.assignment_submitted(module_id, body.kind, body.payload)
        if not tracker.course.is_completed(module_id):
            tracker.module_completed(module_id)
        return {"status": "submitted", "moduleId": module_id}

    @app.get("/api/modules/{module_id}")
    async def module_progress(request: Request, module_id: ModuleId) -> dict[str, Any]:
        return _tracker(request).module_progress(module_id).to_dict()

    # ===== Videos and GitHub =====

    @app.post("/api/videos/{video_id}/progress")
    async def video_progress(
        request: Request, video_id: str, body: VideoProgressRequest
    ) -> dict[str, Any]:
        state = _tracker(request).video_progress(video_id, body.currentTime, body.duration)
        return {"videoId": video_id, **state.to_dict()}

    @app.post("/api/github")
    async def github_action(request: Request, body: GitHubActionRequest) -> dict[str, Any]:
        _tracker(request).github_action(body.action, body.repoUrl)
        return {"status": "recorded"}

    # ===== Analytics =====

    @app.get("/api/summary")
    async def summary(request: Request) -> dict[str, Any]:
        return _tracker(request).summary().to_dict()

    @app.get("/api/patterns")
    async def patterns(request: Request) -> dict[str, Any]:
        return _tracker(request).learning_patterns().to_dict()

    @app.get("/api/streak")
    async def streak(request: Request) -> dict[str, Any]:
        return _tracker(request).study_streak().to_dict()

    @app.get("/api/export")
    async def export(request: Request) -> dict[str, Any]:
        return _tracker(request).export_snapshot()

    # ===== Persistence and files =====

    @app.post("/api/save")
    async def save(request: Request) -> dict[str, Any]:
        tracker = _tracker(request)
        try:
            await tracker.save()
        except StorageError as e:
            logger.warning("Explicit save failed: %s", e)
            raise HTTPException(status_code=503, detail=f"Save failed: {e}") from e
        return {"status": "saved", "lastSaved": tracker.last_saved}

    @app.post("/api/export/json")
    async def export_json(request: Request) -> dict[str, str]:
        filepath: FilePath = request.app.state.exporter.export_json(
            _tracker(request).export_snapshot()
        )
        return {"status": "exported", "filepath": str(filepath)}

    @app.post("/api/export/csv")
    async def export_csv(request: Request) -> dict[str, str]:
        filepath: FilePath = request.app.state.exporter.export_interactions_csv(
            _tracker(request).log
        )
        return {"status": "exported", "filepath": str(filepath)}

    @app.get("/api/exports")
    async def list_exports(request: Request) -> dict[str, Any]:
        return {"exports": request.app.state.exporter.list_exports()}

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    return app


def run_web_ui(
    tracker: ProgressTracker,
    host: str = "127.0.0.1",
    port: int = 8080,
    **kwargs: Any,
) -> None:
    """Run the API server for a tracker."""
    import uvicorn

    uvicorn.run(create_app(tracker, **kwargs), host=host, port=port)
