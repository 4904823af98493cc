"""
Format registry: which backend can produce which container/codec.

Single source of truth for dispatch order and for capability reporting.
The table is built once at import time and exposed read-only.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from audio_pipeline.core.errors import UnsupportedFormat


# libsndfile keeps the sample rate in a C int
MAX_SAMPLE_RATE = 2**31 - 1


class FormatTag(str, Enum):
    WAV = "wav"
    AU = "au"
    AIFF = "aiff"
    MP3 = "mp3"
    OGG = "ogg"
    FLAC = "flac"
    AAC = "aac"
    M4A = "m4a"


class BackendKind(str, Enum):
    """Conversion tiers, declared in priority order (lowest latency first)."""

    NATIVE = "native"
    LIBRARY = "library"
    PROCESS = "process"


_NATIVE = BackendKind.NATIVE
_LIBRARY = BackendKind.LIBRARY
_PROCESS = BackendKind.PROCESS

# fmt: off
BACKEND_CAPABILITY: Mapping[FormatTag, tuple[BackendKind, ...]] = MappingProxyType({
    FormatTag.WAV:  (_NATIVE, _PROCESS),
    FormatTag.AU:   (_NATIVE,),
    FormatTag.AIFF: (_NATIVE,),
    FormatTag.MP3:  (_LIBRARY, _PROCESS),
    FormatTag.OGG:  (_LIBRARY, _PROCESS),
    FormatTag.FLAC: (_LIBRARY, _PROCESS),
    FormatTag.AAC:  (_PROCESS,),
    FormatTag.M4A:  (_PROCESS,),
})
# fmt: on

# MIME types for HTTP responses
MEDIA_TYPES: Mapping[FormatTag, str] = MappingProxyType({
    FormatTag.WAV: "audio/wav",
    FormatTag.AU: "audio/basic",
    FormatTag.AIFF: "audio/aiff",
    FormatTag.MP3: "audio/mpeg",
    FormatTag.OGG: "audio/ogg",
    FormatTag.FLAC: "audio/flac",
    FormatTag.AAC: "audio/aac",
    FormatTag.M4A: "audio/mp4",
})

_METHOD_LABELS = {
    _NATIVE: "Native encoder (wave/libsndfile)",
    _LIBRARY: "Managed library (ffmpeg-python)",
    _PROCESS: "FFmpeg process",
}


@dataclass(frozen=True)
class ConversionInfo:
    """
    Which conversion paths can handle a format.

    native_supported covers the whole in-process tier (native writers or the
    ffmpeg-python library), so it is True for mp3/ogg/flac too. For "no external
    binary at all" use is_native_supported(), which is True for wav/au/aiff only.
    """

    format: str
    native_supported: bool  # native or library tier
    process_supported: bool
    preferred_method: str = "Not supported"

    @property
    def supported(self) -> bool:
        return self.native_supported or self.process_supported


@dataclass(frozen=True)
class PerformanceInfo:
    speed: str
    resource_usage: str
    dependencies: str


def canonicalize(fmt: Union[str, FormatTag]) -> FormatTag:
    """
    Normalize a user-supplied format string to a FormatTag.

    Raises:
        UnsupportedFormat: if the value is not one of the known tags.
    """
    if isinstance(fmt, FormatTag):
        return fmt
    normalized = str(fmt).strip().lower()
    try:
        return FormatTag(normalized)
    except ValueError:
        raise UnsupportedFormat(normalized) from None


def eligible_backends(fmt: Union[str, FormatTag]) -> tuple[BackendKind, ...]:
    """Backends able to produce `fmt`, in dispatch order. Empty → UnsupportedFormat."""
    tag = canonicalize(fmt)
    kinds = BACKEND_CAPABILITY.get(tag, ())
    if not kinds:
        raise UnsupportedFormat(tag.value)
    return kinds


def _lookup(fmt: str) -> tuple[str, tuple[BackendKind, ...]]:
    """Capability lookup that never raises (unknown tags map to no backends)."""
    try:
        tag = canonicalize(fmt)
    except UnsupportedFormat:
        return str(fmt).strip().lower(), ()
    return tag.value, BACKEND_CAPABILITY.get(tag, ())


def get_conversion_info(fmt: str) -> ConversionInfo:
    name, kinds = _lookup(fmt)
    in_process = _NATIVE in kinds or _LIBRARY in kinds
    preferred = _METHOD_LABELS[kinds[0]] if kinds else "Not supported"
    return ConversionInfo(
        format=name,
        native_supported=in_process,
        process_supported=_PROCESS in kinds,
        preferred_method=preferred,
    )


def is_native_supported(fmt: str) -> bool:
    """True when the format can be written without any external binary."""
    _, kinds = _lookup(fmt)
    return _NATIVE in kinds


def get_performance_info(fmt: str) -> PerformanceInfo:
    _, kinds = _lookup(fmt)
    if _NATIVE in kinds:
        return PerformanceInfo("Fastest", "Very Low", "None")
    if _LIBRARY in kinds:
        return PerformanceInfo("Fast", "Low", "FFmpeg binary required (ffmpeg-python)")
    if _PROCESS in kinds:
        return PerformanceInfo("Slower", "High", "FFmpeg binary required")
    return PerformanceInfo("Not supported", "N/A", "Format not supported")


def list_formats() -> list[ConversionInfo]:
    """Conversion info for every known format tag, in declaration order."""
    return [get_conversion_info(tag.value) for tag in FormatTag]
