"""Event models for recorder lifecycle publishing."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class SessionEvent:
    """Capture session lifecycle event."""
    event_id: str
    event_type: str  # "started", "stopped", "error"
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
