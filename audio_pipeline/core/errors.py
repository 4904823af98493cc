"""
Error taxonomy shared by the transcoder and the engine gate.

Only the converter's fallback chain recovers from anything automatically:
BackendFailure (and its SubprocessFailure flavour) stays internal and triggers
the next backend; everything else reaches the caller.
"""

from typing import Optional


class AudioPipelineError(Exception):
    """Base class for every error raised by this package."""


class UnsupportedFormat(AudioPipelineError, ValueError):
    """No backend is registered for the requested format tag (caller error)."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported audio format: '{fmt}'")


class BackendFailure(AudioPipelineError):
    """A single backend attempt failed. Logged by the converter, never surfaced directly."""

    def __init__(self, backend: str, fmt: str, message: str):
        self.backend = backend
        self.format = fmt
        super().__init__(f"[{backend}] {fmt}: {message}")


class SubprocessFailure(BackendFailure):
    """The external transcoder exited non-zero, produced no output, or could not be started."""

    def __init__(
        self,
        backend: str,
        fmt: str,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(backend, fmt, message)


class ConversionFailed(AudioPipelineError, RuntimeError):
    """Every eligible backend failed; wraps the last backend's error."""

    def __init__(self, fmt: str, cause: BaseException):
        self.format = fmt
        self.cause = cause
        super().__init__(f"Conversion to '{fmt}' failed: {cause}")


class UnsupportedEngine(AudioPipelineError, ValueError):
    def __init__(self, engine_type: object):
        self.engine_type = engine_type
        super().__init__(f"Unsupported transcription engine: '{engine_type}'")


class ModeNotSupported(AudioPipelineError, RuntimeError):
    def __init__(self, engine: str, mode: str):
        self.engine = engine
        self.mode = mode
        super().__init__(f"Engine '{engine}' does not support {mode} mode")


class EngineInitializationError(AudioPipelineError, RuntimeError):
    """Raised from an engine's initialize() hook (missing credentials, bad setup)."""
