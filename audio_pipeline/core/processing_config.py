"""
Fully populated configuration value consumed by the engine gate and the converter.

Binding from the environment lives in audio_pipeline.config; everything here
has a usable default so throwaway instances can be built without any setup.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class EngineType(str, Enum):
    ASSEMBLYAI = "assemblyai"
    DEEPGRAM = "deepgram"


class ProcessingMode(str, Enum):
    STREAMING = "streaming"
    BATCH = "batch"


@dataclass(frozen=True)
class AssemblyAIConfig:
    api_key: Optional[str] = None
    language_code: str = "en"


@dataclass(frozen=True)
class DeepgramConfig:
    api_key: Optional[str] = None
    language: str = "en"
    model: str = "nova-2"
    punctuate: bool = True
    interim_results: bool = True


@dataclass(frozen=True)
class VadConfig:
    enabled: bool = True
    threshold: float = 0.3
    silence_duration_ms: int = 250


@dataclass(frozen=True)
class DebugConfig:
    enabled: bool = False
    output_path: str = "./debug/audio"


@dataclass(frozen=True)
class AudioProcessingConfig:
    # Raw strings are allowed so an unknown value from the environment reaches the
    # factory and fails there as an UnsupportedEngine instead of at load time.
    engine: Union[EngineType, str] = EngineType.ASSEMBLYAI
    processing_mode: Union[ProcessingMode, str] = ProcessingMode.BATCH

    assemblyai: AssemblyAIConfig = field(default_factory=AssemblyAIConfig)
    deepgram: DeepgramConfig = field(default_factory=DeepgramConfig)

    # Audio format
    sample_rate: int = 16000
    buffer_size: int = 4096
    buffer_size_ms: int = 100

    # Chunk duration
    max_chunk_duration_seconds: int = 60
    min_chunk_duration_seconds: int = 2

    vad: VadConfig = field(default_factory=VadConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    # Resource limits
    max_chunk_size_kb: int = 1024
    max_buffer_size_mb: int = 10
    processing_timeout_ms: int = 30000

    ffmpeg_binary: str = "ffmpeg"
