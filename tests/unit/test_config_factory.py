import pytest
from unittest.mock import MagicMock, patch

from audio_pipeline.core.errors import EngineInitializationError, ModeNotSupported, UnsupportedEngine
from audio_pipeline.core.processing_config import (
    AssemblyAIConfig,
    AudioProcessingConfig,
    DeepgramConfig,
    EngineType,
    ProcessingMode,
)


def _config(engine=EngineType.ASSEMBLYAI, mode=ProcessingMode.BATCH) -> AudioProcessingConfig:
    return AudioProcessingConfig(
        engine=engine,
        processing_mode=mode,
        assemblyai=AssemblyAIConfig(api_key="aai-key"),
        deepgram=DeepgramConfig(api_key="dg-key"),
    )


def _fake_engine(streaming: bool, batch: bool) -> MagicMock:
    engine = MagicMock()
    engine.name = "FakeEngine"
    engine.supports_streaming_mode.return_value = streaming
    engine.supports_batch_mode.return_value = batch
    return engine


class TestConfig:
    """测试 audio_pipeline/config.py 配置模块"""

    def test_default_engine_and_mode(self):
        """测试默认引擎类型与处理模式"""
        with patch.dict("os.environ", {}, clear=True):
            # 重新加载模块以获取新的环境变量值
            import importlib
            import audio_pipeline.config
            importlib.reload(audio_pipeline.config)

            assert audio_pipeline.config.ENGINE_TYPE == "assemblyai"
            assert audio_pipeline.config.PROCESSING_MODE == "batch"

    def test_custom_engine_type(self):
        """测试自定义引擎类型"""
        with patch.dict("os.environ", {"ENGINE_TYPE": "Deepgram", "PROCESSING_MODE": "STREAMING"}):
            import importlib
            import audio_pipeline.config
            importlib.reload(audio_pipeline.config)

            config = audio_pipeline.config.load_processing_config()
            assert config.engine == "deepgram"
            assert config.processing_mode == "streaming"

    def test_load_processing_config_binds_everything(self):
        """测试环境变量映射到配置对象"""
        with patch.dict("os.environ", {
            "DEEPGRAM_API_KEY": "dg",
            "AUDIO_SAMPLE_RATE": "8000",
            "DEBUG_ENABLED": "true",
            "DEBUG_OUTPUT_PATH": "/tmp/dbg",
            "VAD_ENABLED": "0",
            "FFMPEG_BINARY": "/opt/ffmpeg",
        }, clear=True):
            import importlib
            import audio_pipeline.config
            importlib.reload(audio_pipeline.config)

            config = audio_pipeline.config.load_processing_config()
            assert config.deepgram.api_key == "dg"
            assert config.assemblyai.api_key is None
            assert config.sample_rate == 8000
            assert config.debug.enabled is True
            assert config.debug.output_path == "/tmp/dbg"
            assert config.vad.enabled is False
            assert config.ffmpeg_binary == "/opt/ffmpeg"

    def test_service_config_defaults(self):
        """测试服务配置默认值"""
        with patch.dict("os.environ", {}, clear=True):
            import importlib
            import audio_pipeline.config
            importlib.reload(audio_pipeline.config)

            assert audio_pipeline.config.HOST == "0.0.0.0"
            assert audio_pipeline.config.PORT == 50071
            assert audio_pipeline.config.AUDIO_SAMPLE_RATE == 16000
            assert audio_pipeline.config.MAX_UPLOAD_SIZE_MB == 50

    def test_default_processing_config_value(self):
        config = AudioProcessingConfig()

        assert config.engine is EngineType.ASSEMBLYAI
        assert config.processing_mode is ProcessingMode.BATCH
        assert config.sample_rate == 16000
        assert config.debug.output_path == "./debug/audio"


class TestFactory:
    """测试 audio_pipeline/core/factory.py 引擎校验"""

    def test_create_assemblyai_engine_batch(self):
        from audio_pipeline.core.factory import create_engine
        from audio_pipeline.core.assemblyai_engine import AssemblyAIEngine

        engine = create_engine(_config())

        assert isinstance(engine, AssemblyAIEngine)
        assert engine.session is not None

    def test_create_deepgram_engine_streaming(self):
        from audio_pipeline.core.factory import create_engine
        from audio_pipeline.core.deepgram_engine import DeepgramEngine

        engine = create_engine(_config(EngineType.DEEPGRAM, ProcessingMode.STREAMING))

        assert isinstance(engine, DeepgramEngine)
        assert engine.session is not None

    def test_raw_strings_from_environment_are_accepted(self):
        from audio_pipeline.core.factory import create_engine

        engine = create_engine(_config("DEEPGRAM", "batch"))

        assert engine.name == "Deepgram"

    def test_streaming_on_batch_only_engine_is_rejected_before_initialize(self):
        from audio_pipeline.core.assemblyai_engine import AssemblyAIEngine
        from audio_pipeline.core.factory import create_engine

        with patch.object(AssemblyAIEngine, "initialize") as mock_init:
            with pytest.raises(ModeNotSupported, match="does not support streaming mode") as exc_info:
                create_engine(_config(EngineType.ASSEMBLYAI, ProcessingMode.STREAMING))

        mock_init.assert_not_called()
        assert exc_info.value.engine == "AssemblyAI"
        assert exc_info.value.mode == "streaming"

    def test_injected_engine_without_streaming_never_initialized(self):
        import audio_pipeline.core.factory as factory

        fake = _fake_engine(streaming=False, batch=True)
        with patch.dict(factory._ENGINE_BUILDERS, {EngineType.DEEPGRAM: lambda config: fake}):
            with pytest.raises(ModeNotSupported):
                factory.create_engine(_config(EngineType.DEEPGRAM, ProcessingMode.STREAMING))

        fake.initialize.assert_not_called()

    def test_injected_engine_without_batch_rejected(self):
        import audio_pipeline.core.factory as factory

        fake = _fake_engine(streaming=True, batch=False)
        with patch.dict(factory._ENGINE_BUILDERS, {EngineType.DEEPGRAM: lambda config: fake}):
            with pytest.raises(ModeNotSupported, match="batch"):
                factory.create_engine(_config(EngineType.DEEPGRAM, ProcessingMode.BATCH))

        fake.initialize.assert_not_called()

    def test_compatible_engine_is_initialized_once(self):
        import audio_pipeline.core.factory as factory

        fake = _fake_engine(streaming=True, batch=True)
        with patch.dict(factory._ENGINE_BUILDERS, {EngineType.DEEPGRAM: lambda config: fake}):
            engine = factory.create_engine(_config(EngineType.DEEPGRAM, ProcessingMode.STREAMING))

        assert engine is fake
        fake.initialize.assert_called_once_with()

    def test_unknown_mode_is_rejected(self):
        from audio_pipeline.core.factory import create_engine

        with pytest.raises(ModeNotSupported, match="realtime"):
            create_engine(_config(EngineType.DEEPGRAM, "realtime"))

    def test_create_engine_invalid_type(self):
        """测试无效引擎类型"""
        from audio_pipeline.core.factory import create_engine

        with pytest.raises(UnsupportedEngine, match="Unsupported transcription engine"):
            create_engine(_config("whisper"))

    def test_known_type_without_builder(self):
        import audio_pipeline.core.factory as factory

        with patch.dict(factory._ENGINE_BUILDERS, {}, clear=True):
            with pytest.raises(UnsupportedEngine):
                factory.create_engine(_config())

    def test_initialize_failure_propagates(self):
        from audio_pipeline.core.factory import create_engine

        config = AudioProcessingConfig(engine=EngineType.ASSEMBLYAI)  # no API key
        with pytest.raises(EngineInitializationError, match="API key"):
            create_engine(config)

    def test_create_engine_from_environment(self):
        """测试不传配置时从环境变量构建"""
        with patch.dict("os.environ", {
            "ENGINE_TYPE": "deepgram",
            "PROCESSING_MODE": "streaming",
            "DEEPGRAM_API_KEY": "dg-key",
        }, clear=True):
            import importlib
            import audio_pipeline.config
            import audio_pipeline.core.factory
            importlib.reload(audio_pipeline.config)
            importlib.reload(audio_pipeline.core.factory)

            from audio_pipeline.core.factory import create_engine

            engine = create_engine()
            assert engine.name == "Deepgram"


class TestSupportedEngines:
    def test_lists_every_engine_with_capabilities(self):
        from audio_pipeline.core.factory import get_supported_engines

        engines = get_supported_engines()

        assert set(engines) == {EngineType.ASSEMBLYAI, EngineType.DEEPGRAM}
        assert engines[EngineType.ASSEMBLYAI].supports_streaming is False
        assert engines[EngineType.ASSEMBLYAI].supports_batch is True
        assert engines[EngineType.DEEPGRAM].supports_streaming is True
        assert engines[EngineType.DEEPGRAM].supports_batch is True

    def test_never_initializes_and_needs_no_credentials(self):
        from audio_pipeline.core.assemblyai_engine import AssemblyAIEngine
        from audio_pipeline.core.deepgram_engine import DeepgramEngine
        from audio_pipeline.core.factory import get_supported_engines

        with patch.object(AssemblyAIEngine, "initialize") as aai_init, patch.object(
            DeepgramEngine, "initialize"
        ) as dg_init:
            get_supported_engines()

        aai_init.assert_not_called()
        dg_init.assert_not_called()
