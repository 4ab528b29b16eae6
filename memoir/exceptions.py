"""Exception definitions for the Memoir recorder."""

from typing import Optional


class MemoirError(Exception):
    """Base exception class for Memoir errors."""

    pass


class ConfigurationError(MemoirError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


class PermissionDenied(MemoirError):
    """Raised when microphone access is refused or no input device exists."""

    pass


class EncodingError(MemoirError):
    """Raised when audio cannot be encoded into a consistent WAV container."""

    pass


class SessionActiveError(MemoirError):
    """Raised when a capture session is started while another is recording."""

    pass


class SessionNotActiveError(MemoirError):
    """Raised when stopping a capture session that is not recording."""

    pass


class UploadError(MemoirError):
    """Raised when the story server rejects a request or cannot be reached."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body
