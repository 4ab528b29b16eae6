"""Main application entry point for Memoir."""

import sys
import time
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import __version__
from .config import MemoirConfig
from .exceptions import MemoirError
from .models.audio import EncodedAudio
from .models.transcription import ChatMessage, TranscriptionResult
from .services.recording_service import RecordingService
from .transcription.story_client import StoryClient
from .ui.status_display import StatusDisplay

logger = logging.getLogger(__name__)

RECORD_MODES = ("transcribe", "upload", "local")


class MemoirApp:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None,
                 capture_factory=None):
        self.config = MemoirConfig(config_path)
        self.capture_factory = capture_factory
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.client = StoryClient(
            base_url=self.config.get_server_url(),
            language_code=self.config.get('story_server.language_code', 'en-US'),
            timeout_seconds=self.config.get('story_server.timeout_seconds', 120),
        )

    def record(self, duration: Optional[float], mode: str = "transcribe",
               title: Optional[str] = None, speaker: Optional[str] = None,
               output: Optional[str] = None) -> dict:
        """Record until Ctrl+C or duration elapses, then encode and hand off."""
        display = StatusDisplay(self.console)
        service = RecordingService(self.config, capture_factory=self.capture_factory)
        try:
            started = service.start_recording()
            upload = self._make_upload(mode, title, speaker, started["session_id"])
            elapsed = self._wait_for_stop(service, display, duration)

            display.is_busy = upload is not None
            with self.console.status(display.render(elapsed)):
                result = service.stop_recording(upload=upload, title=title)
            display.is_busy = False

            if output:
                Path(output).write_bytes(result["encoded"].data)
                logger.info(f"Wrote WAV copy to {output}")
            self._report(display, result)
            return result
        finally:
            service.cleanup()
            display.close()

    def _wait_for_stop(self, service: RecordingService, display: StatusDisplay,
                       duration: Optional[float]) -> float:
        elapsed = 0.0
        self.console.print("Recording. Press Ctrl+C to stop.")
        try:
            with self.console.status(display.render(0)) as status:
                while True:
                    elapsed = service.get_recording_stats().duration_seconds
                    status.update(display.render(elapsed))
                    if duration is not None and elapsed >= duration:
                        break
                    # Buffer full or device lost
                    if service.session.capture_ended:
                        break
                    time.sleep(0.25)
        except KeyboardInterrupt:
            logger.info("Recording stopped by user")
        return elapsed

    def _make_upload(self, mode: str, title: Optional[str], speaker: Optional[str],
                     session_id: str):
        if mode == "transcribe":
            return lambda encoded: asyncio.run(self.client.transcribe(encoded))
        if mode == "upload":
            return lambda encoded: asyncio.run(self.client.upload_recording(
                encoded, title=title, speaker_name=speaker, session_id=session_id))
        return None

    def _report(self, display: StatusDisplay, result: dict) -> None:
        encoded: EncodedAudio = result["encoded"]
        self.console.print(
            f"Captured {encoded.duration_seconds:.1f}s "
            f"({encoded.source_sample_rate}Hz -> {encoded.sample_rate}Hz)")
        if result["truncated"]:
            self.console.print("Maximum recording length reached; later audio was not kept.",
                               style="yellow")
        if result["device_lost"]:
            display.show_error("Microphone was lost during recording; audio up to that point was kept.")
        if result["audio_file"]:
            self.console.print(f"Saved: {result['audio_file']}")

        upload = result["upload"]
        if isinstance(upload, TranscriptionResult):
            display.show_transcript(upload)
        elif isinstance(upload, dict):
            recording_id = upload.get('recordingId')
            self.console.print(f"Uploaded recording {recording_id} "
                               f"(status: {upload.get('status')})")
            self.console.print(f"Transcribe it later with: memoir transcribe {recording_id}")

    def transcribe(self, recording_id: str) -> TranscriptionResult:
        """Transcribe a recording uploaded earlier with --mode upload."""
        display = StatusDisplay(self.console)
        try:
            display.is_busy = True
            with self.console.status(display.render(0)):
                result = asyncio.run(self.client.transcribe_recording(recording_id))
            display.is_busy = False
            display.show_transcript(result)
            return result
        finally:
            display.close()

    def transcript(self, recording_id: str) -> TranscriptionResult:
        result = asyncio.run(self.client.get_transcript(recording_id))
        if not result.transcript:
            self.console.print(f"No transcript yet (status: {result.status})", style="yellow")
            return result

        display = StatusDisplay(self.console)
        try:
            display.show_transcript(result)
        finally:
            display.close()
        return result

    def ask(self, transcript_file: str, question: str) -> str:
        transcript = Path(transcript_file).read_text(encoding="utf-8")
        reply = asyncio.run(self.client.ask(transcript, [ChatMessage("user", question)]))
        self.console.print(reply)
        return reply

    def health(self) -> bool:
        ok = asyncio.run(self.client.health())
        self.console.print("Story server OK" if ok else "Story server unhealthy",
                           style="green" if ok else "red")
        return ok


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/memoir.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("Memoir recorder starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Memoir - record family stories and send them for transcription"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: memoir.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Memoir v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    record = commands.add_parser("record", help="Record a story from the microphone")
    record.add_argument("--duration", type=float,
                        help="Stop after this many seconds (default: wait for Ctrl+C)")
    record.add_argument("--mode", choices=RECORD_MODES, default="transcribe",
                        help="transcribe now, upload for later, or keep locally only")
    record.add_argument("--title", type=str, help="Recording title")
    record.add_argument("--speaker", type=str, help="Name of the storyteller")
    record.add_argument("--output", type=str, help="Also write the WAV to this path")

    ask = commands.add_parser("ask", help="Ask a question about a transcript")
    ask.add_argument("--transcript-file", required=True, help="Text file with the transcript")
    ask.add_argument("question", help="Question to ask")

    transcribe = commands.add_parser("transcribe", help="Transcribe a recording uploaded earlier")
    transcribe.add_argument("recording_id", help="recordingId printed by 'record --mode upload'")

    transcript = commands.add_parser("transcript", help="Show the stored transcript of a recording")
    transcript.add_argument("recording_id", help="recordingId printed by 'record --mode upload'")

    commands.add_parser("health", help="Check the story server")
    return parser


def main(argv=None) -> None:
    """Main entry point for Memoir."""
    args = build_parser().parse_args(argv)

    try:
        app = MemoirApp(args.config, args.log_level)
        if args.command == "record":
            app.record(args.duration, args.mode, args.title, args.speaker, args.output)
        elif args.command == "ask":
            app.ask(args.transcript_file, args.question)
        elif args.command == "transcribe":
            app.transcribe(args.recording_id)
        elif args.command == "transcript":
            app.transcript(args.recording_id)
        elif args.command == "health":
            if not app.health():
                sys.exit(1)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except (MemoirError, FileNotFoundError, ValueError) as e:
        Console(stderr=True).print(f"Error: {e}", style="red")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
