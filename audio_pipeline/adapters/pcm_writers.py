"""
In-process container writers for raw PCM (WAV / AU / AIFF).

Input is always signed 16-bit little-endian mono. WAV is written with the
stdlib wave module; AU and AIFF go through libsndfile (soundfile), which
handles the big-endian sample layout of both containers.
"""

import io
import wave
from dataclasses import dataclass
from typing import Callable, Mapping

import numpy as np
import soundfile as sf

from audio_pipeline.core.formats import FormatTag

SAMPLE_WIDTH = 2  # 16-bit
CHANNELS = 1


@dataclass(frozen=True)
class PcmFormat:
    """Descriptor of the samples being written into a container."""

    sample_rate: int
    sample_width: int = SAMPLE_WIDTH
    channels: int = CHANNELS

    @property
    def frame_size(self) -> int:
        return self.sample_width * self.channels


def whole_frames(pcm: bytes, frame_size: int = SAMPLE_WIDTH * CHANNELS) -> bytes:
    """Drop a trailing partial frame; a dangling byte is not an error."""
    usable = len(pcm) - (len(pcm) % frame_size)
    return bytes(pcm[:usable])


def encode_wav(pcm: bytes, sample_rate: int) -> bytes:
    fmt = PcmFormat(sample_rate=sample_rate)
    data = whole_frames(pcm, fmt.frame_size)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(fmt.channels)
        wf.setsampwidth(fmt.sample_width)
        wf.setframerate(fmt.sample_rate)
        wf.writeframes(data)
    return buffer.getvalue()


def _encode_sndfile(pcm: bytes, sample_rate: int, container: str) -> bytes:
    fmt = PcmFormat(sample_rate=sample_rate)
    # Explicit little-endian view; libsndfile converts to the container's byte order
    samples = np.frombuffer(whole_frames(pcm, fmt.frame_size), dtype="<i2")

    buffer = io.BytesIO()
    sf.write(buffer, samples, fmt.sample_rate, format=container, subtype="PCM_16")
    return buffer.getvalue()


def encode_au(pcm: bytes, sample_rate: int) -> bytes:
    """Sun/NeXT .snd, 16-bit linear big-endian."""
    return _encode_sndfile(pcm, sample_rate, "AU")


def encode_aiff(pcm: bytes, sample_rate: int) -> bytes:
    return _encode_sndfile(pcm, sample_rate, "AIFF")


NATIVE_WRITERS: Mapping[FormatTag, Callable[[bytes, int], bytes]] = {
    FormatTag.WAV: encode_wav,
    FormatTag.AU: encode_au,
    FormatTag.AIFF: encode_aiff,
}
