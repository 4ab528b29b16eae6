"""Recording service that runs one capture session at a time and hands off the WAV."""

import uuid
import logging
from typing import Optional, Dict, Any, Callable
from datetime import datetime

import numpy as np

from ..audio.audio_pub import SessionPublisher
from ..audio.session import CaptureSession
from ..config import MemoirConfig
from ..exceptions import SessionActiveError, SessionNotActiveError
from ..models.audio import AudioStats, EncodedAudio
from ..models.session import SessionInfo
from ..storage.file_manager import FileManager

logger = logging.getLogger(__name__)

UploadFunction = Callable[[EncodedAudio], Any]


class RecordingService:
    """Manages the record -> encode -> upload lifecycle."""

    def __init__(
        self,
        config: MemoirConfig,
        capture_factory: Optional[Callable[[Callable[[np.ndarray], bool]], object]] = None,
        file_manager: Optional[FileManager] = None,
        publisher: Optional[SessionPublisher] = None,
    ):
        """Initialize recording service.

        Args:
            config: Application configuration
            capture_factory: Builds the capture device around a block callback;
                defaults to a PyAudio AudioCapture
            file_manager: Local storage; created from config when keep_local_copy is on
            publisher: Lifecycle event publisher
        """
        self.config = config
        self.capture_factory = capture_factory or self._build_capture
        self.publisher = publisher or SessionPublisher()

        self.keep_local_copy = self.config.get('storage.keep_local_copy', True)
        self.file_manager = file_manager
        if self.file_manager is None and self.keep_local_copy:
            self.file_manager = FileManager(self.config.get_data_directory())

        self.session: Optional[CaptureSession] = None
        self.current_session_id: Optional[str] = None
        self.started_at: Optional[datetime] = None

        logger.info("RecordingService ready")

    def _build_capture(self, callback: Callable[[np.ndarray], bool]):
        from ..audio.capture import AudioCapture

        return AudioCapture(
            callback=callback,
            chunk_size=self.config.get('audio.block_size', 4096),
            input_device_index=self.config.get('audio.input_device_index'),
        )

    @property
    def is_recording(self) -> bool:
        return self.session is not None and self.session.is_recording

    def start_recording(self) -> Dict[str, Any]:
        """Open the microphone and start a new capture session.

        Returns:
            Dictionary with session id, device sample rate and start time

        Raises:
            SessionActiveError: A session is already recording
            PermissionDenied: Microphone access refused or no input device
        """
        if self.is_recording:
            raise SessionActiveError(f"Already recording session {self.current_session_id}")

        session = CaptureSession(
            self.capture_factory,
            max_duration_seconds=self.config.get('audio.max_duration_seconds', 600),
            block_size=self.config.get('audio.block_size', 4096),
            publisher=self.publisher,
        )
        input_rate = session.start()

        self.session = session
        self.started_at = datetime.now()
        if self.file_manager is not None:
            self.current_session_id = self.file_manager.create_session_directory()
        else:
            self.current_session_id = uuid.uuid4().hex

        logger.info(f"Started recording for session: {self.current_session_id}")
        return {
            "session_id": self.current_session_id,
            "input_sample_rate": input_rate,
            "started_at": self.started_at.isoformat(),
        }

    def stop_recording(self, upload: Optional[UploadFunction] = None,
                       title: Optional[str] = None) -> Dict[str, Any]:
        """Stop capture, encode, keep a local copy and hand the WAV to upload.

        The local copy is written before uploading so a failed upload does
        not lose the recording. Upload errors propagate to the caller.

        Args:
            upload: Caller-supplied transport, e.g. a StoryClient wrapper
            title: Stored with the local session metadata

        Returns:
            Dictionary with the encoded audio, local file path and upload result
        """
        if self.session is None:
            raise SessionNotActiveError("Not recording")

        session, self.session = self.session, None
        encoded = session.stop()
        stats = session.get_stats()

        result: Dict[str, Any] = {
            "session_id": self.current_session_id,
            "stopped_at": datetime.now().isoformat(),
            "duration_seconds": encoded.duration_seconds,
            "input_sample_rate": encoded.source_sample_rate,
            "sample_count": encoded.sample_count,
            "total_chunks": stats.total_chunks,
            "truncated": session.truncated,
            "device_lost": session.device_error is not None,
            "encoded": encoded,
            "audio_file": None,
            "upload": None,
        }

        if self.file_manager is not None:
            result["audio_file"] = self.file_manager.save_audio_file(
                encoded.data, self.current_session_id)
            self._save_session_info(result, title)

        if upload is not None:
            logger.info(f"Uploading session {self.current_session_id}")
            result["upload"] = upload(encoded)
            if self.file_manager is not None:
                self._save_session_info(result, title)

        logger.info(f"Session stopped: {self.current_session_id}")
        return result

    def _save_session_info(self, result: Dict[str, Any], title: Optional[str]) -> None:
        encoded: EncodedAudio = result["encoded"]
        self.file_manager.save_session_info(SessionInfo(
            session_id=result["session_id"],
            start_time=self.started_at,
            duration_seconds=encoded.duration_seconds,
            audio_file="recording.wav",
            file_size_bytes=len(encoded.data),
            input_sample_rate=encoded.source_sample_rate,
            sample_count=encoded.sample_count,
            total_chunks=result["total_chunks"],
            title=getattr(result["upload"], "title", None) or title,
            story_id=_story_id(result["upload"]),
        ))

    def get_recording_stats(self) -> Optional[AudioStats]:
        """Get current recording statistics."""
        if self.session:
            return self.session.get_stats()
        return None

    def cleanup(self) -> None:
        """Abort any active session and release the microphone."""
        if self.session is not None:
            self.session.abort()
            self.session = None
        self.current_session_id = None
        logger.info("RecordingService cleaned up")


def _story_id(upload_result: Any) -> Optional[str]:
    if upload_result is None:
        return None
    if isinstance(upload_result, dict):
        story_id = upload_result.get("recordingId") or upload_result.get("id")
    else:
        story_id = getattr(upload_result, "id", None)
    return str(story_id) if story_id else None
