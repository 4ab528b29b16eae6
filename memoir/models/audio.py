"""Audio-related data models."""

import base64
from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    buffer_size: int  # Blocks waiting in the sample buffer
    sample_rate: int  # Device input rate
    chunk_size: int
    total_chunks: int


@dataclass
class AudioFrame:
    """A single block of float32 samples with timestamp."""
    samples: np.ndarray
    timestamp: float  # Time when this frame was captured
    frame_number: int


@dataclass(frozen=True)
class EncodedAudio:
    """A complete 16-bit PCM WAV container ready for upload."""
    data: bytes
    sample_count: int
    sample_rate: int
    source_sample_rate: int

    @property
    def duration_seconds(self) -> float:
        return self.sample_count / self.sample_rate

    @property
    def payload_bytes(self) -> int:
        return len(self.data) - 44

    def to_base64(self) -> str:
        """Return the container as base64 text for JSON transports."""
        return base64.b64encode(self.data).decode("ascii")
