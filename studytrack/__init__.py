"""StudyTrack - engagement and progress analytics for self-paced courses."""

__version__ = "0.1.0"
