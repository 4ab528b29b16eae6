"""Transcription-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class TranscriptionResult:
    """Story transcript returned by the story server."""
    id: str
    title: str
    transcript: str
    status: Optional[str] = None  # recording status for uploads not yet transcribed


@dataclass
class ChatMessage:
    """One turn of a follow-up conversation about a transcript."""
    role: str  # "user" | "assistant"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}
