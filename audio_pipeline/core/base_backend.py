"""
Conversion backend interface.
Structural subtyping (Protocol), same as the engine interface.
"""

from typing import Protocol, runtime_checkable

from audio_pipeline.core.formats import BackendKind, FormatTag


@runtime_checkable
class ConversionBackend(Protocol):
    """
    One strategy able to turn raw PCM into an encoded container.

    An attempt is fully isolated: whatever temporary state it creates is gone
    by the time convert() returns or raises.
    """

    kind: BackendKind
    name: str

    def supports(self, fmt: FormatTag) -> bool:
        """Whether this backend can produce `fmt` at all."""
        ...

    def convert(self, pcm: bytes, sample_rate: int, fmt: FormatTag) -> bytes:
        """
        Encode mono s16le PCM into `fmt`.

        Raises:
            BackendFailure: on any failure (the converter falls back on it).
        """
        ...
