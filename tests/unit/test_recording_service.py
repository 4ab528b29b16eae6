"""Unit tests for RecordingService with an in-memory capture device."""

import os
from unittest.mock import Mock

import pytest

from memoir.audio.audio_pub import SessionPublisher
from memoir.audio.encoder import decode_wav
from memoir.config import MemoirConfig
from memoir.exceptions import (
    PermissionDenied,
    SessionActiveError,
    SessionNotActiveError,
    UploadError,
)
from memoir.models.transcription import TranscriptionResult
from memoir.services.recording_service import RecordingService


@pytest.fixture
def service(config_file, fake_capture_factory):
    config = MemoirConfig(config_file)
    return RecordingService(config, capture_factory=fake_capture_factory,
                            publisher=SessionPublisher("test_recording_service"))


@pytest.mark.unit
class TestRecordingService:

    def test_start_recording(self, service):
        started = service.start_recording()

        assert service.is_recording is True
        assert started["input_sample_rate"] == 48000
        assert started["session_id"] == service.current_session_id
        assert service.file_manager.get_session_path(started["session_id"]).is_dir()

    def test_stop_recording_saves_local_copy(self, service):
        started = service.start_recording()

        result = service.stop_recording(title="Summer of '68")

        assert service.is_recording is False
        assert result["session_id"] == started["session_id"]
        assert result["sample_count"] == 16000
        assert result["duration_seconds"] == pytest.approx(1.0)
        assert result["total_chunks"] == 10
        assert result["truncated"] is False
        assert result["device_lost"] is False
        assert result["upload"] is None
        with open(result["audio_file"], "rb") as f:
            pcm, rate = decode_wav(f.read())
        assert rate == 16000
        assert len(pcm) == 16000

        info = service.file_manager.load_session_info(result["session_id"])
        assert info.title == "Summer of '68"
        assert info.input_sample_rate == 48000
        assert info.file_size_bytes == 44 + 2 * 16000
        assert info.story_id is None

    def test_upload_receives_encoded_audio(self, service):
        upload = Mock(return_value=TranscriptionResult(
            id="65f0", title="Family Memory - 1/1/2025", transcript="hello"))
        service.start_recording()

        result = service.stop_recording(upload=upload)

        encoded = upload.call_args[0][0]
        assert encoded is result["encoded"]
        assert result["upload"].transcript == "hello"
        info = service.file_manager.load_session_info(result["session_id"])
        assert info.story_id == "65f0"
        assert info.title == "Family Memory - 1/1/2025"

    def test_upload_dict_result(self, service):
        service.start_recording()

        result = service.stop_recording(upload=lambda encoded: {"recordingId": "r-9"})

        info = service.file_manager.load_session_info(result["session_id"])
        assert info.story_id == "r-9"

    def test_upload_failure_keeps_local_copy(self, service):
        upload = Mock(side_effect=UploadError("Story server error: 500", status=500))
        started = service.start_recording()

        with pytest.raises(UploadError):
            service.stop_recording(upload=upload)

        session_path = service.file_manager.get_session_path(started["session_id"])
        assert (session_path / "recording.wav").exists()
        assert service.is_recording is False

    def test_start_twice(self, service):
        service.start_recording()

        with pytest.raises(SessionActiveError):
            service.start_recording()

    def test_stop_without_start(self, service):
        with pytest.raises(SessionNotActiveError):
            service.stop_recording()

    def test_permission_denied(self, service, fake_capture_factory):
        fake_capture_factory.deny = True

        with pytest.raises(PermissionDenied):
            service.start_recording()

        assert service.is_recording is False
        assert service.session is None
        assert fake_capture_factory.created[0].closed

    def test_no_local_copy(self, config_file, fake_capture_factory):
        config = MemoirConfig(config_file)
        config.set('storage.keep_local_copy', False)
        service = RecordingService(config, capture_factory=fake_capture_factory)

        service.start_recording()
        result = service.stop_recording()

        assert service.file_manager is None
        assert result["audio_file"] is None
        assert len(service.current_session_id) == 32

    def test_recording_stats(self, service):
        assert service.get_recording_stats() is None

        service.start_recording()
        stats = service.get_recording_stats()

        assert stats.is_recording is True
        assert stats.sample_rate == 48000

    def test_cleanup_releases_microphone(self, service, fake_capture_factory):
        service.start_recording()

        service.cleanup()

        assert service.is_recording is False
        assert fake_capture_factory.created[0].closed
        assert service.current_session_id is None
        assert os.path.isdir(service.file_manager.sessions_dir)

    def test_device_lost_is_reported(self, service, fake_capture_factory):
        fake_capture_factory.fail_after = 3
        service.start_recording()

        result = service.stop_recording()

        assert result["device_lost"] is True
        assert result["sample_count"] == 3 * 1600
        assert (service.file_manager.get_session_path(result["session_id"]) / "recording.wav").exists()
