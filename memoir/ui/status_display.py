"""Terminal status line for the recorder, driven by session events."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..audio.audio_pub import SESSION_TOPIC
from ..models.events import SessionEvent
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """Format seconds as mm:ss."""
    whole = max(0, int(seconds))
    return f"{whole // 60:02d}:{whole % 60:02d}"


class StatusDisplay:
    """Tracks recorder state from pub/sub events and renders it with rich."""

    def __init__(self, console: Optional[Console] = None, topic: str = SESSION_TOPIC):
        self.console = console or Console()
        self.topic = topic
        self.is_recording = False
        self.is_busy = False
        self.truncated = False
        self.error: Optional[str] = None

        pub.subscribe(self._on_session_event, topic)

    def _on_session_event(self, event: SessionEvent) -> None:
        logger.debug(f"Status display received {event.event_type}")
        if event.event_type == "started":
            self.is_recording = True
            self.truncated = False
            self.error = None
        elif event.event_type == "stopped":
            self.is_recording = False
            self.truncated = bool(event.metadata.get("truncated"))
        elif event.event_type == "error":
            self.is_recording = False
            self.error = event.metadata.get("error", "Failed")

    def render(self, elapsed_seconds: float) -> Text:
        """Status line: Recording.../Idle | mm:ss, plus busy and error state."""
        state = ("Recording...", "bold red") if self.is_recording else ("Idle", "bold yellow")
        line = Text.assemble(state, " | ", format_elapsed(elapsed_seconds))
        if self.is_busy:
            line.append("  Transcribing...", style="cyan")
        if self.error:
            line.append(f"  {self.error}", style="red")
        return line

    def show_transcript(self, result: TranscriptionResult) -> None:
        body = result.transcript or "(no speech detected)"
        self.console.print(Panel(body, title=result.title or "Transcript", subtitle=result.id))

    def show_error(self, message: str) -> None:
        self.error = message
        self.console.print(Text(message, style="red"))

    def close(self) -> None:
        pub.unsubscribe(self._on_session_event, self.topic)
