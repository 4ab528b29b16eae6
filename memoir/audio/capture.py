"""Microphone capture module that streams float32 sample blocks to a consumer."""

import pyaudio
import logging
from threading import Thread, Event
from typing import Optional, Callable, Dict, Any
from datetime import datetime
import numpy as np

from ..exceptions import PermissionDenied
from ..models.audio import AudioStats


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous mono float32 capture at the input device's native rate."""

    def __init__(
        self,
        callback: Callable[[np.ndarray], bool],
        chunk_size: int = 4096,
        input_device_index: Optional[int] = None,
    ):
        """Initialize audio capture.

        Args:
            callback: Receives each captured block; returning False ends capture
            chunk_size: Size of each audio block in samples
            input_device_index: PyAudio device index, None for the system default
        """
        self.block_callback = callback
        self.chunk_size = chunk_size
        self.input_device_index = input_device_index
        self.channels = 1
        self.format = pyaudio.paFloat32

        # Reported by the device when the stream is opened
        self.sample_rate: Optional[int] = None

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        # Set when the device fails mid-capture
        self.error: Optional[OSError] = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        # PyAudio resources
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def open_stream(self) -> int:
        """Open the microphone without reading from it yet.

        Blocks until the audio subsystem grants or refuses the device.

        Returns:
            The input sample rate reported by the device

        Raises:
            PermissionDenied: Microphone access refused or no input device
        """
        if self.stream is None:
            self.__open_audio_stream()
        return self.sample_rate

    def start_recording(self) -> int:
        """Start reading blocks in a background thread, opening the device if needed.

        Returns:
            The input sample rate reported by the device
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return self.sample_rate

        logger.info("Starting audio recording")
        self.open_stream()

        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.error = None

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()
        return self.sample_rate

    @property
    def has_ended(self) -> bool:
        """True once the capture thread has exited and no more blocks will arrive."""
        return self.recording_thread is not None and not self.recording_thread.is_alive()

    def stop_recording(self) -> None:
        """Stop recording and wait for the capture thread to release the device."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        # The thread normally releases the device; this covers a thread that never ran
        if not (self.recording_thread and self.recording_thread.is_alive()):
            self._release_stream()
        self.is_recording = False
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")

    def close(self) -> None:
        """Release the device, stopping the capture thread first if it runs."""
        if self.is_recording:
            self.stop_recording()
        else:
            self._release_stream()

    def __input_device_info(self) -> Dict[str, Any]:
        if self.input_device_index is None:
            return self.pyaudio_instance.get_default_input_device_info()
        return self.pyaudio_instance.get_device_info_by_index(self.input_device_index)

    def __open_audio_stream(self) -> None:
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            device_info = self.__input_device_info()
            if int(device_info.get("maxInputChannels", 1)) < 1:
                raise OSError(f"Device {device_info.get('name')} has no input channels")

            self.sample_rate = int(device_info["defaultSampleRate"])
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, ValueError) as e:
            logger.error(f"Microphone unavailable: {e}")
            self._release_stream()
            raise PermissionDenied(f"Microphone access denied or no input device: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

    def __read_audio_chunk(self) -> np.ndarray:
        raw = self.stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return np.frombuffer(raw, dtype=np.float32)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                samples = self.__read_audio_chunk()
                if self.block_callback(samples) is False:
                    logger.warning("Block consumer is full, ending capture early")
                    break
        except OSError as e:
            logger.error(f"Audio stream read failed: {e}")
            self.error = e
        finally:
            self._release_stream()

    def _release_stream(self) -> None:
        """Close the stream and terminate PyAudio. Safe to call repeatedly."""
        stream, self.stream = self.stream, None
        instance, self.pyaudio_instance = self.pyaudio_instance, None
        try:
            if stream:
                stream.stop_stream()
                stream.close()
        finally:
            if instance:
                instance.terminate()

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            buffer_size=0,
            sample_rate=self.sample_rate or 0,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        self.close()
