"""Session event publisher for pub/sub lifecycle notifications."""

import uuid
import logging
from typing import Any, Dict, Optional
from pubsub import pub
from ..models.events import SessionEvent

logger = logging.getLogger(__name__)

SESSION_TOPIC = "recorder.session"


class SessionPublisher:
    """Publishes capture session events using pubsub.pub."""

    def __init__(self, topic: str = SESSION_TOPIC):
        """Initialize session publisher.

        Args:
            topic: Pub/sub topic name for session events
        """
        self.topic = topic
        logger.info(f"SessionPublisher initialized with topic: {topic}")

    def publish(self, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> SessionEvent:
        """Publish a session event to the pub/sub topic.

        Args:
            event_type: "started", "stopped" or "error"
            metadata: Extra details for subscribers

        Returns:
            The published SessionEvent
        """
        event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            metadata=metadata or {},
        )
        pub.sendMessage(self.topic, event=event)
        logger.debug(f"Published session event: {event_type}")
        return event
