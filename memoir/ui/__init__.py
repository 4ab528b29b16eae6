"""Terminal UI components."""

from .status_display import StatusDisplay, format_elapsed

__all__ = ["StatusDisplay", "format_elapsed"]
