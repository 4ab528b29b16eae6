"""Story server transcription client for Memoir."""

from ..models.transcription import TranscriptionResult, ChatMessage
from .story_client import StoryClient

__all__ = [
    "TranscriptionResult",
    "ChatMessage",
    "StoryClient",
]
