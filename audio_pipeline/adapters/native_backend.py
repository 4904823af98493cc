import struct
import wave

from audio_pipeline.adapters.pcm_writers import NATIVE_WRITERS
from audio_pipeline.core.errors import BackendFailure
from audio_pipeline.core.formats import BackendKind, FormatTag


class NativeBackend:
    """
    In-process encoder for WAV / AU / AIFF (wave + libsndfile).
    No external binary, no temporary files.
    """

    kind = BackendKind.NATIVE
    name = "native"

    def supports(self, fmt: FormatTag) -> bool:
        return fmt in NATIVE_WRITERS

    def convert(self, pcm: bytes, sample_rate: int, fmt: FormatTag) -> bytes:
        writer = NATIVE_WRITERS.get(fmt)
        if writer is None:
            raise BackendFailure(self.name, fmt.value, "format not handled by the native encoder")
        try:
            return writer(pcm, sample_rate)
        # soundfile.LibsndfileError is a RuntimeError
        except (struct.error, wave.Error, RuntimeError, ValueError, OverflowError) as e:
            raise BackendFailure(self.name, fmt.value, str(e)) from e
