"""
Managed transcoding-library backend (ffmpeg-python).

Cannot consume raw PCM: the native encoder writes a WAV intermediate first,
then the library re-encodes it with a codec-specific attribute set.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import ffmpeg

from audio_pipeline.adapters.pcm_writers import CHANNELS, encode_wav
from audio_pipeline.adapters.scratch import scratch_dir
from audio_pipeline.core.errors import BackendFailure
from audio_pipeline.core.formats import BackendKind, FormatTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioAttributes:
    """Encoder attributes handed to the library for one target format."""

    codec: str
    bitrate: Optional[int] = None  # bits/s; None = lossless


# fmt: off
CODEC_ATTRIBUTES: dict[FormatTag, AudioAttributes] = {
    FormatTag.MP3:  AudioAttributes(codec="libmp3lame", bitrate=64_000),
    FormatTag.OGG:  AudioAttributes(codec="libvorbis", bitrate=128_000),
    FormatTag.FLAC: AudioAttributes(codec="flac"),
}
# fmt: on


class LibraryBackend:
    kind = BackendKind.LIBRARY
    name = "ffmpeg-python"

    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self.ffmpeg_binary = ffmpeg_binary

    def supports(self, fmt: FormatTag) -> bool:
        return fmt in CODEC_ATTRIBUTES

    def output_kwargs(self, fmt: FormatTag, sample_rate: int) -> dict[str, Any]:
        """Map AudioAttributes onto ffmpeg-python output keyword arguments."""
        attributes = CODEC_ATTRIBUTES[fmt]
        kwargs: dict[str, Any] = {
            "format": fmt.value,
            "acodec": attributes.codec,
            "ar": sample_rate,
            "ac": CHANNELS,
        }
        if attributes.bitrate is not None:
            kwargs["audio_bitrate"] = attributes.bitrate
        return kwargs

    def convert(self, pcm: bytes, sample_rate: int, fmt: FormatTag) -> bytes:
        if not self.supports(fmt):
            raise BackendFailure(self.name, fmt.value, "no codec attributes for this format")

        with scratch_dir(prefix="library-conversion-") as tmp:
            input_wav = tmp / "input.wav"
            output_file = tmp / f"output.{fmt.value}"

            input_wav.write_bytes(encode_wav(pcm, sample_rate))

            try:
                stream = (
                    ffmpeg.input(str(input_wav), format="wav")
                    .output(str(output_file), **self.output_kwargs(fmt, sample_rate))
                    .overwrite_output()
                )
                stream.run(cmd=self.ffmpeg_binary, capture_stdout=True, capture_stderr=True)
            except ffmpeg.Error as e:
                stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
                raise BackendFailure(self.name, fmt.value, f"encoding failed: {stderr[-500:]}") from e
            except OSError as e:
                raise BackendFailure(self.name, fmt.value, f"cannot run {self.ffmpeg_binary}: {e}") from e

            if not output_file.exists():
                raise BackendFailure(self.name, fmt.value, "output file not created")

            data = output_file.read_bytes()
            logger.debug(f"ffmpeg-python encoded {fmt.value}: {len(data)} bytes")
            return data
