"""Bounded sample buffer shared between the capture thread and the session."""

import time
import queue
import logging
import threading
from typing import List, Optional

import numpy as np

from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)


class SampleBuffer:
    """Bounded FIFO of float32 sample blocks.

    The capture thread is the only producer. The owning session drains the
    whole queue once, after capture has stopped.
    """

    def __init__(self, max_blocks: int):
        """Initialize sample buffer.

        Args:
            max_blocks: Maximum number of blocks held before push() refuses more
        """
        if max_blocks <= 0:
            raise ValueError(f"max_blocks must be positive, got {max_blocks}")
        self.max_blocks = max_blocks
        self.queue: "queue.Queue[AudioFrame]" = queue.Queue(maxsize=max_blocks)
        self.frame_counter = 0
        self.total_samples = 0
        self.start_time: Optional[float] = None
        self.closed = False
        self._lock = threading.Lock()

        logger.info(f"SampleBuffer initialized: {max_blocks} blocks capacity")

    @classmethod
    def for_duration(cls, duration_seconds: float, sample_rate: int, block_size: int) -> "SampleBuffer":
        """Size a buffer to hold duration_seconds of audio at sample_rate."""
        max_blocks = max(1, int(np.ceil(duration_seconds * sample_rate / block_size)))
        return cls(max_blocks)

    def push(self, samples: np.ndarray) -> bool:
        """Append a block of samples.

        Returns:
            False if the buffer is full or closed and the block was not stored
        """
        current_time = time.time()
        if self.start_time is None:
            self.start_time = current_time

        frame = AudioFrame(
            samples=np.asarray(samples, dtype=np.float32).copy(),
            timestamp=current_time,
            frame_number=self.frame_counter,
        )
        with self._lock:
            if self.closed:
                logger.warning("Sample buffer closed, late block rejected")
                return False
            try:
                self.queue.put_nowait(frame)
            except queue.Full:
                logger.warning(f"Sample buffer full ({self.max_blocks} blocks), block rejected")
                return False

            self.frame_counter += 1
            self.total_samples += len(frame.samples)
        return True

    def close(self) -> None:
        """Refuse further pushes. Blocks already accepted stay until drained."""
        with self._lock:
            self.closed = True

    def drain(self) -> List[np.ndarray]:
        """Remove and return every buffered block in capture order."""
        blocks = []
        while True:
            try:
                frame = self.queue.get_nowait()
            except queue.Empty:
                break
            blocks.append(frame.samples)

        logger.debug(f"Drained {len(blocks)} blocks from sample buffer")
        return blocks

    def is_full(self) -> bool:
        return self.queue.full()

    def __len__(self) -> int:
        return self.queue.qsize()

    def clear(self) -> None:
        """Discard buffered blocks and reset counters."""
        self.drain()
        self.frame_counter = 0
        self.total_samples = 0
        self.start_time = None
        logger.debug("Sample buffer cleared")
