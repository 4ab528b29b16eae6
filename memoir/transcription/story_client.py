"""Story server client: uploads encoded recordings and asks follow-up questions."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..exceptions import UploadError
from ..models.audio import EncodedAudio
from ..models.transcription import ChatMessage, TranscriptionResult

logger = logging.getLogger(__name__)


class StoryClient:
    """Async HTTP client for the family story server."""

    def __init__(
        self,
        base_url: str,
        language_code: str = "en-US",
        timeout_seconds: float = 120.0,
        session_factory: Optional[Callable[..., aiohttp.ClientSession]] = None,
    ):
        """Initialize story client.

        Args:
            base_url: Server root, e.g. http://localhost:3000
            language_code: BCP-47 language sent with transcription requests
            timeout_seconds: Total timeout per request
            session_factory: Builds the aiohttp session (tests pass a fake)
        """
        self.base_url = base_url.rstrip("/")
        self.language_code = language_code
        self.timeout_seconds = timeout_seconds
        self.session_factory = session_factory or aiohttp.ClientSession

        logger.info(f"StoryClient initialized for {self.base_url}")

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with self.session_factory(timeout=timeout) as session:
                async with session.request(method, url, **kwargs) as response:
                    if response.status < 200 or response.status >= 300:
                        error_text = await response.text()
                        logger.error(f"{method} {path} failed: {response.status} - {error_text}")
                        raise UploadError(
                            f"Story server error: {response.status} - {error_text}",
                            status=response.status,
                            body=error_text,
                        )
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"{method} {path} could not reach story server: {e}")
            raise UploadError(f"Story server unreachable: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"{method} {path} timed out after {self.timeout_seconds}s")
            raise UploadError(f"Story server timed out after {self.timeout_seconds}s") from e

    async def transcribe(self, encoded: EncodedAudio,
                         language_code: Optional[str] = None) -> TranscriptionResult:
        """Send a recording as base64 WAV and get back the stored transcript.

        Args:
            encoded: 16 kHz mono WAV produced by the encoder
            language_code: Overrides the client default

        Returns:
            TranscriptionResult with the server-side story id and title
        """
        payload = {
            "wavBase64": encoded.to_base64(),
            "languageCode": language_code or self.language_code,
        }
        logger.debug(f"Transcribing {encoded.duration_seconds:.1f}s of audio "
                     f"({len(encoded.data)} bytes)")
        data = await self._request("POST", "/api/transcribe", json=payload)
        return TranscriptionResult(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            transcript=data.get("transcript", ""),
        )

    async def upload_recording(
        self,
        encoded: EncodedAudio,
        title: Optional[str] = None,
        speaker_name: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload a recording as a binary WAV file for later transcription.

        Returns:
            Server response with recordingId, sessionId and status
        """
        form = aiohttp.FormData()
        form.add_field("audio", encoded.data, filename="recording.wav",
                       content_type="audio/wav")
        if title:
            form.add_field("title", title)
        if speaker_name:
            form.add_field("speakerName", speaker_name)

        headers = {"x-session-id": session_id} if session_id else None
        data = await self._request("POST", "/api/recordings", data=form, headers=headers)
        logger.info(f"Uploaded recording {data.get('recordingId')} "
                    f"(session {data.get('sessionId')})")
        return data

    async def transcribe_recording(self, recording_id: str) -> TranscriptionResult:
        """Transcribe a recording previously sent with upload_recording."""
        path = f"/api/recordings/{quote(recording_id, safe='')}/transcribe"
        data = await self._request("POST", path)
        logger.info(f"Recording {recording_id} transcribed")
        return TranscriptionResult(
            id=recording_id,
            title="",
            transcript=data.get("transcript", ""),
            status="ready",
        )

    async def get_transcript(self, recording_id: str) -> TranscriptionResult:
        """Fetch the stored transcript of an uploaded recording.

        The transcript is empty and status reports progress (e.g. "uploaded",
        "transcribing", "error") until transcription has finished.
        """
        path = f"/api/recordings/{quote(recording_id, safe='')}/transcript"
        data = await self._request("GET", path)
        transcript = data.get("transcript", "")
        return TranscriptionResult(
            id=recording_id,
            title="",
            transcript=transcript,
            status=data.get("status") or ("ready" if transcript else None),
        )

    async def ask(self, transcript: str, messages: List[ChatMessage]) -> str:
        """Ask a question about a transcript; the last message is the question."""
        if not messages or not messages[-1].content.strip():
            raise ValueError("A non-empty question is required")

        payload = {
            "transcript": transcript,
            "messages": [message.to_dict() for message in messages],
        }
        data = await self._request("POST", "/api/chat", json=payload)
        return data.get("reply", "").strip()

    async def health(self) -> bool:
        """Return True when the story server and its database respond."""
        data = await self._request("GET", "/api/health")
        return data.get("ok") is True
