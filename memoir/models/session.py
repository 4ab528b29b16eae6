"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class SessionInfo:
    """Information about a finished recording session."""
    session_id: str
    start_time: datetime
    duration_seconds: float
    audio_file: str
    file_size_bytes: int
    input_sample_rate: int
    sample_count: int
    total_chunks: int
    title: Optional[str] = None
    story_id: Optional[str] = None  # Id assigned by the story server
