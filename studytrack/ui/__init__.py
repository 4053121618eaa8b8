"""User-facing surfaces for StudyTrack."""
