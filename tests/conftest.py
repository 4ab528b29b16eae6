"""Pytest configuration and fixtures for Memoir tests."""

import pytest
import tempfile
import time
import logging
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from memoir.exceptions import PermissionDenied


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: multi-component workflows with mocked devices")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


def make_sine_blocks(sample_rate=48000, seconds=1.0, block_size=4800, freq=440.0, amplitude=0.5):
    """Split a float32 sine wave into capture-sized blocks."""
    samples = int(sample_rate * seconds)
    t = np.arange(samples) / sample_rate
    wave_data = (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return [wave_data[i:i + block_size] for i in range(0, samples, block_size)]


@pytest.fixture
def sine_blocks():
    """One second of 440 Hz sine at 48 kHz in 4800-sample blocks."""
    return make_sine_blocks()


class FakeCapture:
    """In-memory stand-in for AudioCapture that replays fixed blocks."""

    def __init__(self, callback, blocks=None, sample_rate=48000, deny=False,
                 fail_after=None):
        self.callback = callback
        self.blocks = list(blocks or [])
        self.sample_rate = sample_rate
        self.deny = deny
        self.fail_after = fail_after
        self.error = None
        self.has_ended = False
        self.opened = False
        self.closed = False
        self.is_recording = False
        self.delivered = 0

    def open_stream(self):
        if self.deny:
            raise PermissionDenied("Microphone access denied")
        self.opened = True
        return self.sample_rate

    def start_recording(self):
        self.is_recording = True
        for block in self.blocks:
            if self.fail_after is not None and self.delivered >= self.fail_after:
                self.error = OSError("Device unavailable")
                break
            self.delivered += 1
            if self.callback(block) is False:
                break
        self.has_ended = True
        return self.sample_rate

    def close(self):
        self.is_recording = False
        self.closed = True


@pytest.fixture
def fake_capture_factory(sine_blocks):
    """Factory producing FakeCaptures; created instances are kept on .created."""
    def factory(callback):
        capture = FakeCapture(callback, blocks=factory.blocks,
                              sample_rate=factory.sample_rate, deny=factory.deny,
                              fail_after=factory.fail_after)
        factory.created.append(capture)
        return capture

    factory.blocks = sine_blocks
    factory.sample_rate = 48000
    factory.deny = False
    factory.fail_after = None
    factory.created = []
    return factory


@pytest.fixture
def config_file(temp_data_dir):
    """Write a memoir.yaml into the temp dir and return its path."""
    path = Path(temp_data_dir) / "memoir.yaml"
    path.write_text(
        "audio:\n"
        "  block_size: 4800\n"
        "  max_duration_seconds: 60\n"
        "  input_device_index: null\n"
        "story_server:\n"
        "  base_url: http://stories.test/\n"
        "  language_code: en-GB\n"
        "  timeout_seconds: 5\n"
        "storage:\n"
        "  data_directory: data\n"
        "  keep_local_copy: true\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  file_path: data/logs/memoir.log\n"
        "  console_output: false\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    block = (0.25 * np.sin(np.linspace(0, 2 * np.pi, 4800, endpoint=False))).astype(np.float32)

    def read(frames, exception_on_overflow=True):
        time.sleep(0.005)
        return block[:frames].tobytes()

    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.side_effect = read
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'index': 0,
            'name': 'Mock Microphone',
            'maxInputChannels': 1,
            'defaultSampleRate': 48000.0,
        }

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'block': block,
        }
