"""
引擎工厂模块。
根据配置创建对应的转录引擎实例，并在初始化前校验处理模式是否兼容。
"""

import logging
from typing import Callable, Optional

from audio_pipeline.config import load_processing_config
from audio_pipeline.core.base_engine import EngineConfiguration, TranscriptionEngine
from audio_pipeline.core.errors import ModeNotSupported, UnsupportedEngine
from audio_pipeline.core.processing_config import AudioProcessingConfig, EngineType, ProcessingMode

logger = logging.getLogger(__name__)

EngineBuilder = Callable[[AudioProcessingConfig], TranscriptionEngine]


def _build_assemblyai(config: AudioProcessingConfig) -> TranscriptionEngine:
    from audio_pipeline.core.assemblyai_engine import AssemblyAIEngine

    return AssemblyAIEngine(config)


def _build_deepgram(config: AudioProcessingConfig) -> TranscriptionEngine:
    from audio_pipeline.core.deepgram_engine import DeepgramEngine

    return DeepgramEngine(config)


# Single registration point for engine types
_ENGINE_BUILDERS: dict[EngineType, EngineBuilder] = {
    EngineType.ASSEMBLYAI: _build_assemblyai,
    EngineType.DEEPGRAM: _build_deepgram,
}


def create_engine(config: Optional[AudioProcessingConfig] = None) -> TranscriptionEngine:
    """
    Build, validate and initialize the configured engine (服务启动时调用).

    The processing mode is checked against the engine's capability flags
    before initialize() runs, so a rejected engine is never half set up.

    Raises:
        UnsupportedEngine: no builder for the configured engine type.
        ModeNotSupported: the engine cannot run in the configured mode.
    """
    if config is None:
        config = load_processing_config()

    engine = _construct(config.engine, config)
    mode = _mode_value(config.processing_mode)

    if mode == ProcessingMode.STREAMING.value:
        compatible = engine.supports_streaming_mode()
    elif mode == ProcessingMode.BATCH.value:
        compatible = engine.supports_batch_mode()
    else:
        compatible = False

    if not compatible:
        logger.error(f"❌ Engine '{engine.name}' rejected: {mode} mode not supported")
        raise ModeNotSupported(engine.name, mode)

    engine.initialize()

    logger.info(f"🏭 Created {engine.name} transcription engine in {mode} mode")
    return engine


def get_supported_engines() -> dict[EngineType, EngineConfiguration]:
    """
    Capability descriptors of every known engine type.

    Each entry comes from a throwaway instance built under a default config;
    initialize() is never called and no previously built engine is consulted.
    """
    default_config = AudioProcessingConfig()
    return {
        engine_type: builder(default_config).get_configuration()
        for engine_type, builder in _ENGINE_BUILDERS.items()
    }


def _construct(engine_type: object, config: AudioProcessingConfig) -> TranscriptionEngine:
    try:
        resolved = EngineType(str(getattr(engine_type, "value", engine_type)).lower())
    except ValueError:
        raise UnsupportedEngine(engine_type) from None

    builder = _ENGINE_BUILDERS.get(resolved)
    if builder is None:
        raise UnsupportedEngine(resolved.value)

    return builder(config)


def _mode_value(mode: object) -> str:
    return str(getattr(mode, "value", mode)).lower()
