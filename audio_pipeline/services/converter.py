import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from audio_pipeline.adapters.library_backend import LibraryBackend
from audio_pipeline.adapters.native_backend import NativeBackend
from audio_pipeline.adapters.pcm_writers import encode_wav
from audio_pipeline.adapters.process_backend import (
    FORMAT_FLAGS,
    ProcessBackend,
    locate_ffmpeg,
    run_ffmpeg,
)
from audio_pipeline.core.base_backend import ConversionBackend
from audio_pipeline.core.errors import ConversionFailed, SubprocessFailure, UnsupportedFormat
from audio_pipeline.core.formats import (
    MAX_SAMPLE_RATE,
    ConversionInfo,
    FormatTag,
    PerformanceInfo,
    canonicalize,
    eligible_backends,
    get_conversion_info,
    get_performance_info,
    is_native_supported,
)
from audio_pipeline.core.processing_config import AudioProcessingConfig


def default_backends(ffmpeg_binary: str = "ffmpeg") -> list[ConversionBackend]:
    """The standard chain, lowest latency first."""
    return [
        NativeBackend(),
        LibraryBackend(ffmpeg_binary=ffmpeg_binary),
        ProcessBackend(ffmpeg_binary=ffmpeg_binary),
    ]


class AudioConverter:
    """
    原始 PCM 转码调度器。
    职责：
    1. 根据格式选出可用的后端（按优先级排序）
    2. 依次尝试，第一个成功即返回
    3. 全部失败时只抛出最后一个后端的错误（之前的失败只记日志）

    Stateless per call; safe to share between threads. The process backend
    blocks the calling thread, so async callers should use a thread pool.
    """

    def __init__(
        self,
        config: Optional[AudioProcessingConfig] = None,
        backends: Optional[Sequence[ConversionBackend]] = None,
    ):
        self.config = config or AudioProcessingConfig()
        self.backends: tuple[ConversionBackend, ...] = tuple(
            backends if backends is not None else default_backends(self.config.ffmpeg_binary)
        )
        self.logger = logging.getLogger(__name__)
        self.logger.info(
            f"🎛️  AudioConverter initialized. Backends: {[b.name for b in self.backends]}"
        )

    def convert(self, pcm: bytes, sample_rate: int, fmt: Union[str, FormatTag]) -> bytes:
        """
        Convert mono s16le PCM to the requested container/codec.

        Args:
            pcm: raw samples, little-endian signed 16-bit mono
            sample_rate: samples per second (out of band; PCM is not self-describing)
            fmt: target format tag, case-insensitive

        Raises:
            UnsupportedFormat: no backend can produce `fmt` (nothing is attempted).
            ConversionFailed: every eligible backend failed; wraps the last error.
        """
        tag = canonicalize(fmt)
        self._check_sample_rate(sample_rate)

        chain = self._chain_for(tag)
        if not chain:
            raise UnsupportedFormat(tag.value)

        last_error: Optional[Exception] = None
        for attempt, backend in enumerate(chain, start=1):
            try:
                data = backend.convert(pcm, sample_rate, tag)
            except Exception as e:
                last_error = e
                self.logger.warning(
                    f"⚠️  {backend.name} conversion to {tag.value} failed "
                    f"(attempt {attempt}/{len(chain)}): {e}",
                    exc_info=self.logger.isEnabledFor(logging.DEBUG),
                )
                continue

            if attempt > 1:
                self.logger.info(f"✓ {tag.value} produced by fallback backend '{backend.name}'")
            return data

        self.logger.error(f"❌ All backends failed for {tag.value}: {last_error}")
        raise ConversionFailed(tag.value, last_error) from last_error

    def convert_to_wav_fast(self, pcm: bytes, sample_rate: int) -> bytes:
        """
        Native WAV only: no format lookup, no fallback.
        Meant for hot paths where WAV is always available.
        """
        try:
            return encode_wav(pcm, sample_rate)
        except Exception as e:
            self.logger.error(f"Fast WAV conversion failed: {e}", exc_info=True)
            raise RuntimeError("WAV conversion failed") from e

    def dump_mp3(self, pcm: bytes, session_prefix: str = "") -> Path:
        """
        Debug dump: write big-endian PCM as MP3 into the debug output directory.

        The raw temp file is always removed; the MP3 is kept and returned.

        Raises:
            SubprocessFailure: ffmpeg missing, non-zero exit, or no output file.
        """
        debug_dir = Path(self.config.debug.output_path)
        debug_dir.mkdir(parents=True, exist_ok=True)

        # Microseconds plus a random suffix: concurrent dumps never share a path
        stamp = f"{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}_{uuid.uuid4().hex[:8]}"
        raw_file = debug_dir / f"{session_prefix}temp_raw_{stamp}.pcm"
        mp3_file = debug_dir / f"{session_prefix}audio_{stamp}.mp3"

        binary = locate_ffmpeg(self.config.ffmpeg_binary)
        if binary is None:
            raise SubprocessFailure(
                "ffmpeg", FormatTag.MP3.value, f"ffmpeg binary not found: '{self.config.ffmpeg_binary}'"
            )

        cmd = [
            binary, "-y",
            "-f", "s16be",
            "-ar", str(self.config.sample_rate),
            "-ac", "1",
            "-i", str(raw_file),
            *FORMAT_FLAGS[FormatTag.MP3],
            "-ar", "16000",
            str(mp3_file),
        ]

        try:
            raw_file.write_bytes(pcm)
            run_ffmpeg(cmd, mp3_file, "ffmpeg", FormatTag.MP3.value)
        finally:
            raw_file.unlink(missing_ok=True)

        self.logger.debug(f"Debug MP3 written: {mp3_file}")
        return mp3_file

    # === 只读查询（能力报告用，不参与调度） ===

    def get_conversion_info(self, fmt: str) -> ConversionInfo:
        return get_conversion_info(fmt)

    def get_performance_info(self, fmt: str) -> PerformanceInfo:
        return get_performance_info(fmt)

    def is_native_supported(self, fmt: str) -> bool:
        return is_native_supported(fmt)

    def _chain_for(self, tag: FormatTag) -> list[ConversionBackend]:
        """Registered backends able to produce `tag`, in capability-table order."""
        chain: list[ConversionBackend] = []
        for kind in eligible_backends(tag):
            chain.extend(b for b in self.backends if b.kind == kind and b.supports(tag))
        return chain

    @staticmethod
    def _check_sample_rate(sample_rate: int) -> None:
        if (
            not isinstance(sample_rate, int)
            or isinstance(sample_rate, bool)
            or not 0 < sample_rate <= MAX_SAMPLE_RATE
        ):
            raise ValueError(
                f"sample_rate must be an integer in 1..{MAX_SAMPLE_RATE}, got: {sample_rate!r}"
            )
