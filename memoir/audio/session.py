"""Capture session: owns one recording from start() until stop() returns."""

import time
import logging
from typing import Callable, Optional

import numpy as np

from .buffer import SampleBuffer
from .encoder import encode_wav
from .audio_pub import SessionPublisher
from ..exceptions import PermissionDenied, SessionActiveError, SessionNotActiveError
from ..models.audio import AudioStats, EncodedAudio

logger = logging.getLogger(__name__)

BlockCallback = Callable[[np.ndarray], bool]


class CaptureSession:
    """A single microphone recording, encoded to 16 kHz WAV when stopped.

    The session exclusively owns its capture device and sample buffer.
    Usable as a context manager; leaving the block releases the microphone
    even if the body raised:

        with CaptureSession(lambda cb: AudioCapture(cb)) as session:
            time.sleep(5)
            encoded = session.stop()
    """

    def __init__(
        self,
        capture_factory: Callable[[BlockCallback], object],
        max_duration_seconds: float = 600.0,
        block_size: int = 4096,
        publisher: Optional[SessionPublisher] = None,
    ):
        """Initialize capture session.

        Args:
            capture_factory: Builds an AudioCapture-like object around a block callback
            max_duration_seconds: Capacity of the sample buffer in seconds of audio
            block_size: Samples per captured block
            publisher: Optional lifecycle event publisher
        """
        self.capture_factory = capture_factory
        self.max_duration_seconds = max_duration_seconds
        self.block_size = block_size
        self.publisher = publisher

        self.capture = None
        self.buffer: Optional[SampleBuffer] = None
        self.input_sample_rate: Optional[int] = None
        self.is_recording = False
        self.truncated = False
        self.device_error: Optional[PermissionDenied] = None
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else time.monotonic()
        return end - self._started_at

    @property
    def capture_ended(self) -> bool:
        """True while recording if the device stopped delivering blocks on its own."""
        return self.capture is not None and self.capture.has_ended

    def start(self) -> int:
        """Acquire the microphone and begin buffering blocks.

        Returns:
            The device input sample rate for this session

        Raises:
            SessionActiveError: The session is already recording
            PermissionDenied: Microphone access refused or no input device
        """
        if self.is_recording:
            raise SessionActiveError("Capture session is already recording")

        self.truncated = False
        self.device_error = None
        self.capture = self.capture_factory(self._on_block)
        try:
            self.input_sample_rate = self.capture.open_stream()
            self.buffer = SampleBuffer.for_duration(
                self.max_duration_seconds, self.input_sample_rate, self.block_size)
            self._started_at = time.monotonic()
            self._stopped_at = None
            self.capture.start_recording()
        except PermissionDenied as e:
            self._release()
            self._publish("error", {"error": str(e)})
            raise
        except Exception:
            self._release()
            raise

        self.is_recording = True
        logger.info(f"Capture session started at {self.input_sample_rate}Hz")
        self._publish("started", {"input_sample_rate": self.input_sample_rate})
        return self.input_sample_rate

    def stop(self) -> EncodedAudio:
        """Release the microphone and encode everything captured.

        Raises:
            SessionNotActiveError: The session is not recording
        """
        if not self.is_recording:
            raise SessionNotActiveError("Capture session is not recording")

        self._release()
        blocks = self.buffer.drain()

        try:
            encoded = encode_wav(blocks, self.input_sample_rate)
        except Exception as e:
            self._publish("error", {"error": str(e)})
            raise

        # Audio captured before the device was lost is still returned
        if self.device_error is not None:
            self._publish("error", {"error": str(self.device_error)})

        logger.info(f"Capture session stopped: {len(blocks)} blocks, "
                    f"{encoded.duration_seconds:.1f}s encoded")
        self._publish("stopped", {
            "duration_seconds": encoded.duration_seconds,
            "sample_count": encoded.sample_count,
            "truncated": self.truncated,
            "device_lost": self.device_error is not None,
        })
        return encoded

    def abort(self) -> None:
        """Release the microphone and discard captured audio."""
        if not self.is_recording:
            return
        self._release()
        if self.buffer is not None:
            self.buffer.clear()
        logger.info("Capture session aborted")
        self._publish("stopped", {"aborted": True})

    def get_stats(self) -> AudioStats:
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=self.elapsed_seconds,
            buffer_size=len(self.buffer) if self.buffer is not None else 0,
            sample_rate=self.input_sample_rate or 0,
            chunk_size=self.block_size,
            total_chunks=self.buffer.frame_counter if self.buffer is not None else 0,
        )

    def _on_block(self, samples: np.ndarray) -> bool:
        """Runs on the capture thread."""
        if self.buffer.push(samples):
            return True
        if self.buffer.closed:
            return False
        self.truncated = True
        logger.warning(f"Maximum recording length of {self.max_duration_seconds}s reached")
        return False

    def _release(self) -> None:
        capture, self.capture = self.capture, None
        was_recording, self.is_recording = self.is_recording, False
        if self._started_at is not None and self._stopped_at is None:
            self._stopped_at = time.monotonic()
        if capture is None:
            return
        capture.close()
        if self.buffer is not None:
            self.buffer.close()
            if was_recording and not capture.has_ended:
                logger.warning("Capture thread still running after release, later blocks discarded")
        if capture.error is not None:
            logger.error(f"Audio device lost during capture: {capture.error}")
            self.device_error = PermissionDenied(f"Audio device lost during capture: {capture.error}")

    def _publish(self, event_type: str, metadata: dict) -> None:
        if self.publisher is not None:
            self.publisher.publish(event_type, metadata)

    def __enter__(self) -> "CaptureSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.abort()
