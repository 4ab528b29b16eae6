"""File management module for local copies of recordings."""

import json
import logging
import random
import string
from pathlib import Path
from datetime import datetime
from typing import Optional, List
from dataclasses import asdict

from ..models.session import SessionInfo


logger = logging.getLogger(__name__)

SESSION_INFO_FILE = "session_info.json"


class FileManager:
    """Stores encoded recordings and their session metadata on disk."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def create_session_directory(self) -> str:
        """Create new session directory with timestamp and random suffix.

        Returns:
            Session ID (timestamp-based with random suffix)
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        session_id = f"{timestamp}_{random_suffix}"
        session_path = self.sessions_dir / session_id
        session_path.mkdir(exist_ok=True)

        logger.info(f"Created session directory: {session_path}")
        return session_id

    def save_audio_file(self, audio_data: bytes, session_id: str, filename: str = "recording.wav") -> str:
        """Save WAV bytes to the session directory and return the path.

        Args:
            audio_data: Complete WAV container
            session_id: Session identifier
            filename: Target file name; .wav is appended if missing

        Returns:
            Full path to saved audio file
        """
        if not filename.endswith('.wav'):
            filename += '.wav'

        session_path = self.sessions_dir / session_id
        session_path.mkdir(exist_ok=True)
        audio_file_path = session_path / filename

        with open(audio_file_path, 'wb') as f:
            f.write(audio_data)

        logger.info(f"Audio file saved: {audio_file_path} ({len(audio_data)} bytes)")
        return str(audio_file_path)

    def save_session_info(self, session_info: SessionInfo) -> str:
        """Save session information to JSON file.

        Returns:
            Path to saved session info file
        """
        session_path = self.sessions_dir / session_info.session_id
        session_path.mkdir(exist_ok=True)
        info_file = session_path / SESSION_INFO_FILE

        info_dict = asdict(session_info)
        info_dict['start_time'] = session_info.start_time.isoformat()

        with open(info_file, 'w', encoding='utf-8') as f:
            json.dump(info_dict, f, indent=2)

        logger.info(f"Session info saved: {info_file}")
        return str(info_file)

    def load_session_info(self, session_id: str) -> Optional[SessionInfo]:
        """Load session information from JSON file.

        Returns:
            SessionInfo object or None if not found
        """
        info_file = self.sessions_dir / session_id / SESSION_INFO_FILE

        if not info_file.exists():
            logger.warning(f"Session info file not found: {info_file}")
            return None

        with open(info_file, 'r', encoding='utf-8') as f:
            data = json.load(f)

        data['start_time'] = datetime.fromisoformat(data['start_time'])
        return SessionInfo(**data)

    def list_sessions(self) -> List[str]:
        """List all session IDs that have saved metadata, oldest first."""
        sessions = [
            path.name for path in self.sessions_dir.iterdir()
            if path.is_dir() and (path / SESSION_INFO_FILE).exists()
        ]
        sessions.sort()
        logger.debug(f"Found {len(sessions)} sessions")
        return sessions

    def get_session_path(self, session_id: str) -> Path:
        """Get full path to session directory."""
        return self.sessions_dir / session_id
