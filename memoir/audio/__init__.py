"""Audio capture and encoding module.

AudioCapture lives in memoir.audio.capture and is imported from there, so
the encoder can be used on machines without PortAudio.
"""

from .buffer import SampleBuffer
from .encoder import encode_wav, decode_wav, TARGET_SAMPLE_RATE
from .session import CaptureSession

__all__ = [
    'SampleBuffer',
    'CaptureSession',
    'encode_wav',
    'decode_wav',
    'TARGET_SAMPLE_RATE',
]
