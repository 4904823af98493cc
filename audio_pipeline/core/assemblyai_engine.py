"""
AssemblyAI 转录引擎封装类。
Batch only: whole files are uploaded and polled for a transcript.
"""

import logging
from typing import Optional

import requests

from audio_pipeline.core.base_engine import EngineConfiguration
from audio_pipeline.core.errors import EngineInitializationError
from audio_pipeline.core.processing_config import AudioProcessingConfig, EngineType

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.assemblyai.com/v2"

SUPPORTED_LANGUAGES = (
    "en", "es", "fr", "de", "it", "pt", "nl", "hi", "ja",
    "zh", "fi", "ko", "pl", "ru", "tr", "uk", "vi",
)


class AssemblyAIEngine:
    """
    AssemblyAI 引擎。
    构造函数不做任何网络 I/O；initialize() 才建立 HTTP 会话。
    """

    name = "AssemblyAI"

    def __init__(self, config: AudioProcessingConfig):
        self.config = config
        self.base_url = API_BASE_URL
        self.session: Optional[requests.Session] = None

    def supports_streaming_mode(self) -> bool:
        return False

    def supports_batch_mode(self) -> bool:
        return True

    def initialize(self) -> None:
        if self.session is not None:
            logger.warning("⚠️ AssemblyAI engine already initialized. Skipping.")
            return

        api_key = self.config.assemblyai.api_key
        if not api_key:
            raise EngineInitializationError("AssemblyAI API key is required (ASSEMBLYAI_API_KEY)")

        session = requests.Session()
        session.headers.update({"authorization": api_key})
        self.session = session
        logger.info(f"✅ AssemblyAI engine ready (language={self.config.assemblyai.language_code})")

    def get_configuration(self) -> EngineConfiguration:
        return EngineConfiguration(
            engine_type=EngineType.ASSEMBLYAI,
            name=self.name,
            supports_streaming=self.supports_streaming_mode(),
            supports_batch=self.supports_batch_mode(),
            required_config_keys=("assemblyai.api_key",),
            supported_languages=SUPPORTED_LANGUAGES,
            max_streaming_chunk_bytes=0,
            recommended_buffer_ms=self.config.buffer_size_ms,
            requires_conversion=True,
            input_format="wav",
        )

    def shutdown(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None
