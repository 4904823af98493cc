"""
External-process backend: drives the ffmpeg command-line transcoder.

Raw PCM goes to a temp file, ffmpeg is invoked with pinned input flags
(s16le, sample rate, mono) and format-specific encoder flags, and the call
blocks until the process exits. No timeout is applied here; callers that need
bounded latency wrap the call themselves.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from audio_pipeline.adapters.pcm_writers import whole_frames
from audio_pipeline.adapters.scratch import scratch_dir
from audio_pipeline.core.errors import SubprocessFailure
from audio_pipeline.core.formats import BackendKind, FormatTag

logger = logging.getLogger(__name__)

# fmt: off
FORMAT_FLAGS: dict[FormatTag, List[str]] = {
    FormatTag.WAV:  ["-f", "wav"],
    FormatTag.MP3:  ["-codec:a", "mp3", "-b:a", "64k"],
    FormatTag.FLAC: ["-codec:a", "flac"],
    FormatTag.OGG:  ["-codec:a", "libvorbis", "-b:a", "128k"],
    FormatTag.AAC:  ["-codec:a", "aac", "-b:a", "128k"],
    FormatTag.M4A:  ["-codec:a", "aac", "-b:a", "128k"],
}
# fmt: on

# Strip encoder/version tags and random stream serials so identical input gives identical bytes
_DETERMINISTIC_FLAGS = ["-map_metadata", "-1", "-fflags", "+bitexact", "-flags:a", "+bitexact"]


def build_ffmpeg_command(
    binary: str,
    input_path: str,
    output_path: str,
    sample_rate: int,
    fmt: FormatTag,
    sample_format: str = "s16le",
) -> List[str]:
    """
    Build the ffmpeg argv for one conversion.

    Raises:
        ValueError: if the format has no ffmpeg recipe.
    """
    if fmt not in FORMAT_FLAGS:
        raise ValueError(f"Unsupported audio format for ffmpeg: {fmt.value}")

    return [
        binary, "-y",
        "-f", sample_format,
        "-ar", str(sample_rate),
        "-ac", "1",
        "-i", input_path,
        *FORMAT_FLAGS[fmt],
        *_DETERMINISTIC_FLAGS,
        output_path,
    ]


def locate_ffmpeg(binary: str = "ffmpeg") -> Optional[str]:
    """Resolve the ffmpeg executable (name on PATH or explicit path)."""
    return shutil.which(binary)


def run_ffmpeg(cmd: List[str], output_path: Path, backend: str, fmt: str) -> None:
    """
    Run ffmpeg synchronously; success means exit code 0 and the output file on disk.

    Raises:
        SubprocessFailure: on non-zero exit, missing output, or a binary that cannot start.
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise SubprocessFailure(backend, fmt, f"cannot start {cmd[0]}: {e}") from e

    stderr_tail = (result.stderr or "")[-500:]
    if result.returncode != 0:
        raise SubprocessFailure(
            backend,
            fmt,
            f"ffmpeg conversion failed with exit code: {result.returncode}",
            returncode=result.returncode,
            stderr=stderr_tail,
        )
    if not output_path.exists():
        raise SubprocessFailure(
            backend,
            fmt,
            "converted audio file was not created",
            returncode=result.returncode,
            stderr=stderr_tail,
        )


class ProcessBackend:
    kind = BackendKind.PROCESS
    name = "ffmpeg"

    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self.ffmpeg_binary = ffmpeg_binary

    def supports(self, fmt: FormatTag) -> bool:
        return fmt in FORMAT_FLAGS

    def convert(self, pcm: bytes, sample_rate: int, fmt: FormatTag) -> bytes:
        if not self.supports(fmt):
            raise SubprocessFailure(self.name, fmt.value, "no ffmpeg recipe for this format")

        binary = locate_ffmpeg(self.ffmpeg_binary)
        if binary is None:
            raise SubprocessFailure(self.name, fmt.value, f"ffmpeg binary not found: '{self.ffmpeg_binary}'")

        with scratch_dir(prefix="audio-conversion-") as tmp:
            raw_file = tmp / "input.pcm"
            converted_file = tmp / f"output.{fmt.value}"

            raw_file.write_bytes(whole_frames(pcm))
            cmd = build_ffmpeg_command(binary, str(raw_file), str(converted_file), sample_rate, fmt)
            run_ffmpeg(cmd, converted_file, self.name, fmt.value)

            return converted_file.read_bytes()
