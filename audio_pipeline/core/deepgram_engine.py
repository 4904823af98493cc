"""
Deepgram engine: live streaming over raw linear16 and pre-recorded batch.
"""

import logging
from typing import Optional

import requests

from audio_pipeline.core.base_engine import EngineConfiguration
from audio_pipeline.core.errors import EngineInitializationError
from audio_pipeline.core.processing_config import AudioProcessingConfig, EngineType

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.deepgram.com/v1"

SUPPORTED_LANGUAGES = (
    "en", "en-US", "en-GB", "es", "fr", "de", "it", "pt", "nl",
    "hi", "ja", "zh", "ko", "pl", "ru", "tr", "uk", "sv",
)

# 8 KiB per websocket frame keeps latency low at 16 kHz
MAX_STREAMING_CHUNK_BYTES = 8192


class DeepgramEngine:
    name = "Deepgram"

    def __init__(self, config: AudioProcessingConfig):
        self.config = config
        self.base_url = API_BASE_URL
        self.session: Optional[requests.Session] = None

    def supports_streaming_mode(self) -> bool:
        return True

    def supports_batch_mode(self) -> bool:
        return True

    def initialize(self) -> None:
        if self.session is not None:
            logger.warning("⚠️ Deepgram engine already initialized. Skipping.")
            return

        api_key = self.config.deepgram.api_key
        if not api_key:
            raise EngineInitializationError("Deepgram API key is required (DEEPGRAM_API_KEY)")

        session = requests.Session()
        session.headers.update({"Authorization": f"Token {api_key}"})
        self.session = session
        logger.info(
            f"✅ Deepgram engine ready (model={self.config.deepgram.model}, "
            f"language={self.config.deepgram.language})"
        )

    def get_configuration(self) -> EngineConfiguration:
        return EngineConfiguration(
            engine_type=EngineType.DEEPGRAM,
            name=self.name,
            supports_streaming=self.supports_streaming_mode(),
            supports_batch=self.supports_batch_mode(),
            required_config_keys=("deepgram.api_key",),
            supported_languages=SUPPORTED_LANGUAGES,
            max_streaming_chunk_bytes=MAX_STREAMING_CHUNK_BYTES,
            recommended_buffer_ms=self.config.buffer_size_ms,
            requires_conversion=False,
            input_format="linear16",
        )

    def shutdown(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None
