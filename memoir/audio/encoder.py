"""WAV encoder: turns captured float32 blocks into 16 kHz mono 16-bit PCM.

The pipeline is pure arithmetic over numpy arrays so it can be exercised
with synthetic samples:

    blocks -> concat_blocks -> resample_linear -> quantize_pcm16 -> frame_wav

Quantization is asymmetric (x32768 below zero, x32767 otherwise) and
truncates toward zero. Recordings already stored by the story server were
produced with exactly this rule, so it must not be changed to rounding.
"""

import io
import logging
import struct
import wave
from typing import Iterable, Tuple

import numpy as np

from ..exceptions import EncodingError
from ..models.audio import EncodedAudio

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, 16-bit
WAV_HEADER_SIZE = 44

# RIFF/WAVE header with a single 16-byte PCM fmt chunk
_HEADER_FORMAT = "<4sI4s4sIHHIIHH4sI"


def concat_blocks(blocks: Iterable[np.ndarray]) -> np.ndarray:
    """Join captured blocks into one contiguous float32 sequence, in order."""
    arrays = [np.asarray(block, dtype=np.float32).ravel() for block in blocks]
    if not arrays:
        return np.zeros(0, dtype=np.float32)
    return np.concatenate(arrays)


def resample_linear(samples: np.ndarray, input_rate: int,
                    output_rate: int = TARGET_SAMPLE_RATE) -> np.ndarray:
    """Resample by linear interpolation between neighbouring input samples.

    Args:
        samples: float32 input samples
        input_rate: Rate the samples were captured at (Hz)
        output_rate: Desired rate (Hz)

    Returns:
        float32 array of length floor(len(samples) * output_rate / input_rate).
        When the rates are equal the input is returned untouched.
    """
    _check_rate(input_rate)
    _check_rate(output_rate)
    samples = np.asarray(samples, dtype=np.float32)

    if input_rate == output_rate:
        return samples

    out_length = (len(samples) * int(output_rate)) // int(input_rate)
    if out_length == 0:
        return np.zeros(0, dtype=np.float32)

    ratio = input_rate / output_rate
    last = len(samples) - 1
    positions = np.arange(out_length, dtype=np.float64) * ratio
    lower = np.minimum(np.floor(positions).astype(np.int64), last)
    upper = np.minimum(lower + 1, last)
    frac = positions - lower

    source = samples.astype(np.float64)
    blended = source[lower] * (1.0 - frac) + source[upper] * frac
    return blended.astype(np.float32)


def quantize_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1] and scale to signed 16-bit integers."""
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype(np.int16)


def dequantize_pcm16(pcm: np.ndarray) -> np.ndarray:
    """Inverse of quantize_pcm16, up to one quantization step."""
    values = np.asarray(pcm, dtype=np.int16).astype(np.float64)
    return np.where(values < 0, values / 32768.0, values / 32767.0)


def frame_wav(pcm: np.ndarray, sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """Wrap 16-bit mono samples in a 44-byte RIFF/WAVE header."""
    pcm = np.asarray(pcm, dtype=np.int16)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(CHANNELS)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.astype("<i2").tobytes())

    data = buffer.getvalue()
    _verify_container(data, len(pcm))
    return data


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """Parse a container produced by frame_wav.

    Returns:
        Tuple of (int16 samples, sample_rate)
    """
    if len(data) < WAV_HEADER_SIZE:
        raise EncodingError(f"WAV data too short: {len(data)} bytes")

    sample_count = (len(data) - WAV_HEADER_SIZE) // SAMPLE_WIDTH
    _verify_container(data, sample_count)
    sample_rate = struct.unpack_from("<I", data, 24)[0]
    pcm = np.frombuffer(data, dtype="<i2", offset=WAV_HEADER_SIZE).astype(np.int16)
    return pcm, sample_rate


def encode_wav(blocks: Iterable[np.ndarray], input_rate: int) -> EncodedAudio:
    """Concatenate, resample, quantize and frame captured blocks.

    Args:
        blocks: Captured float32 blocks in capture order
        input_rate: Device sample rate the blocks were recorded at

    Returns:
        EncodedAudio holding a 16 kHz mono 16-bit WAV container
    """
    _check_rate(input_rate)
    samples = concat_blocks(blocks)
    if not np.all(np.isfinite(samples)):
        raise EncodingError("Captured audio contains non-finite samples")

    resampled = resample_linear(samples, input_rate, TARGET_SAMPLE_RATE)
    pcm = quantize_pcm16(resampled)
    data = frame_wav(pcm, TARGET_SAMPLE_RATE)

    logger.debug(f"Encoded {len(samples)} samples @ {input_rate}Hz -> "
                 f"{len(pcm)} samples @ {TARGET_SAMPLE_RATE}Hz ({len(data)} bytes)")
    return EncodedAudio(
        data=data,
        sample_count=len(pcm),
        sample_rate=TARGET_SAMPLE_RATE,
        source_sample_rate=int(input_rate),
    )


def _check_rate(rate) -> None:
    if rate is None or not np.isfinite(rate) or rate <= 0:
        raise EncodingError(f"Invalid sample rate: {rate}")


def _verify_container(data: bytes, sample_count: int) -> None:
    """Header, sample count and byte length must agree exactly."""
    data_bytes = sample_count * SAMPLE_WIDTH
    if len(data) != WAV_HEADER_SIZE + data_bytes:
        raise EncodingError(
            f"WAV length {len(data)} does not match {sample_count} samples")

    (riff, riff_size, wave_tag, fmt_tag, fmt_size, audio_format, channels,
     sample_rate, byte_rate, block_align, bits, data_tag,
     declared_bytes) = struct.unpack_from(_HEADER_FORMAT, data, 0)

    if (riff, wave_tag, fmt_tag, data_tag) != (b"RIFF", b"WAVE", b"fmt ", b"data"):
        raise EncodingError("Malformed RIFF/WAVE chunk tags")
    if (fmt_size, audio_format, channels, bits) != (16, 1, CHANNELS, SAMPLE_WIDTH * 8):
        raise EncodingError("WAV fmt chunk is not 16-bit mono PCM")
    if byte_rate != sample_rate * CHANNELS * SAMPLE_WIDTH or block_align != CHANNELS * SAMPLE_WIDTH:
        raise EncodingError("WAV byte rate / block align inconsistent")
    if declared_bytes != data_bytes or riff_size != 36 + data_bytes:
        raise EncodingError(
            f"WAV header declares {declared_bytes} data bytes, payload has {data_bytes}")
