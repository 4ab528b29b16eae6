"""Services layer for Memoir application logic."""

from .recording_service import RecordingService

__all__ = [
    "RecordingService",
]
