"""Memoir: record spoken family stories and send them for transcription."""

__version__ = "0.1.0"
