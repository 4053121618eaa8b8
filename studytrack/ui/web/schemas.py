"""Request models for the StudyTrack HTTP API."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SessionStartRequest(BaseModel):
    """Environment descriptors reported by the browser."""
    userAgent: Optional[str] = None
    screenResolution: Optional[str] = None


class VideoProgressRequest(BaseModel):
    """A playback tick from a video player."""
    currentTime: float
    duration: float


class AssignmentSubmission(BaseModel):
    """An assignment submitted for a module."""
    kind: str = Field(..., min_length=1)  # 'github', 'text'
    payload: Dict[str, Any] = Field(default_factory=dict)


class GitHubActionRequest(BaseModel):
    """A repository interaction (view, clone, fork)."""
    action: str = Field(..., min_length=1)
    repoUrl: str = Field(..., min_length=1)
