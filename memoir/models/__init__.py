"""Data models for the Memoir recorder."""

from .transcription import TranscriptionResult, ChatMessage
from .audio import AudioStats, AudioFrame, EncodedAudio
from .session import SessionInfo
from .events import SessionEvent

__all__ = [
    "TranscriptionResult",
    "ChatMessage",
    "AudioStats",
    "AudioFrame",
    "EncodedAudio",
    "SessionInfo",
    "SessionEvent",
]
