"""
测试 audio_pipeline/adapters/pcm_writers.py

WAV is read back with the stdlib wave module; AU / AIFF are read back with
soundfile and their headers spot-checked with struct.
"""

import io
import struct
import wave

import numpy as np
import pytest
import soundfile as sf

from audio_pipeline.adapters.pcm_writers import (
    NATIVE_WRITERS,
    PcmFormat,
    encode_aiff,
    encode_au,
    encode_wav,
    whole_frames,
)
from audio_pipeline.core.formats import FormatTag

# 4 samples: 1, -1, 256, 0x1234 (little-endian)
PCM = struct.pack("<4h", 1, -1, 256, 0x1234)
SAMPLES = [1, -1, 256, 0x1234]


def _read_back(data: bytes) -> tuple[list[int], int, int]:
    samples, rate = sf.read(io.BytesIO(data), dtype="int16", always_2d=False)
    info = sf.info(io.BytesIO(data))
    return np.asarray(samples).tolist(), rate, info.channels


def _aiff_chunks(data: bytes) -> dict[str, bytes]:
    assert data[:4] == b"FORM"
    assert data[8:12] == b"AIFF"
    chunks: dict[str, bytes] = {}
    pos = 12
    while pos + 8 <= len(data):
        chunk_id = data[pos : pos + 4].decode("latin-1")
        size = struct.unpack(">L", data[pos + 4 : pos + 8])[0]
        chunks[chunk_id] = data[pos + 8 : pos + 8 + size]
        pos += 8 + size + (size % 2)
    return chunks


class TestHelpers:
    def test_whole_frames_drops_dangling_byte(self) -> None:
        assert whole_frames(b"\x01\x02\x03") == b"\x01\x02"

    def test_whole_frames_keeps_even_buffer(self) -> None:
        assert whole_frames(PCM) == PCM

    def test_frame_size(self) -> None:
        assert PcmFormat(sample_rate=16000).frame_size == 2

    def test_native_writers_cover_wav_au_aiff(self) -> None:
        assert set(NATIVE_WRITERS) == {FormatTag.WAV, FormatTag.AU, FormatTag.AIFF}


class TestWav:
    def test_round_trip_header_and_samples(self) -> None:
        data = encode_wav(PCM, 16000)

        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 16000
            assert wf.getnframes() == 4
            assert wf.readframes(4) == PCM

    def test_odd_length_truncated_to_whole_frames(self) -> None:
        data = encode_wav(PCM + b"\x7f", 8000)

        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getnframes() == 4

    def test_empty_buffer_produces_valid_header(self) -> None:
        data = encode_wav(b"", 16000)

        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WAVE"
        assert len(data) == 44


class TestAu:
    def test_header_fields(self) -> None:
        data = encode_au(PCM, 22050)

        magic, offset, _size, encoding, rate, channels = struct.unpack(">4sIIIII", data[:24])
        assert magic == b".snd"
        assert encoding == 3  # 16-bit linear PCM
        assert rate == 22050
        assert channels == 1
        assert len(data) - offset == len(PCM)

    def test_samples_are_big_endian(self) -> None:
        data = encode_au(PCM, 16000)

        offset = struct.unpack(">I", data[4:8])[0]
        assert struct.unpack(">4h", data[offset:]) == tuple(SAMPLES)

    @pytest.mark.parametrize("rate", [8000, 16000, 22050, 44100, 48000])
    def test_read_back(self, rate) -> None:
        samples, read_rate, channels = _read_back(encode_au(PCM, rate))

        assert samples == SAMPLES
        assert read_rate == rate
        assert channels == 1

    def test_odd_length_truncated(self) -> None:
        samples, _, _ = _read_back(encode_au(b"\x01\x00\x02", 16000))

        assert samples == [1]


class TestAiff:
    def test_chunks_and_samples(self) -> None:
        data = encode_aiff(PCM, 16000)
        chunks = _aiff_chunks(data)

        channels, frames, bits = struct.unpack(">hLh", chunks["COMM"][:8])
        assert struct.unpack(">L", data[4:8])[0] == len(data) - 8
        assert channels == 1
        assert frames == 4
        assert bits == 16
        # SSND: offset, blockSize, then big-endian samples
        assert struct.unpack(">4h", chunks["SSND"][8:]) == tuple(SAMPLES)

    @pytest.mark.parametrize("rate", [8000, 16000, 22050, 44100, 48000])
    def test_read_back(self, rate) -> None:
        samples, read_rate, channels = _read_back(encode_aiff(PCM, rate))

        assert samples == SAMPLES
        assert read_rate == rate
        assert channels == 1

    def test_odd_length_truncated(self) -> None:
        chunks = _aiff_chunks(encode_aiff(PCM + b"\x01", 16000))

        assert struct.unpack(">L", chunks["COMM"][2:6])[0] == 4


@pytest.mark.parametrize("writer", [encode_wav, encode_au, encode_aiff])
def test_writers_are_deterministic(writer) -> None:
    assert writer(PCM, 16000) == writer(PCM, 16000)
