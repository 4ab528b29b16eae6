"""Local storage for recordings."""

from .file_manager import FileManager

__all__ = ["FileManager"]
