"""
统一配置管理模块。
通过环境变量控制服务行为。
支持从 .env 文件加载配置。
"""

import os
from pathlib import Path

# 加载 .env 文件（如果存在）
from dotenv import load_dotenv

from audio_pipeline.core.processing_config import (
    AssemblyAIConfig,
    AudioProcessingConfig,
    DebugConfig,
    DeepgramConfig,
    EngineType,
    ProcessingMode,
    VadConfig,
)

# 查找 .env 文件：优先使用项目根目录的 .env
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    # 尝试从当前工作目录加载
    load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# === 引擎配置 ===
ENGINE_TYPE = os.getenv("ENGINE_TYPE", EngineType.ASSEMBLYAI.value)
PROCESSING_MODE = os.getenv("PROCESSING_MODE", ProcessingMode.BATCH.value)

ASSEMBLYAI_API_KEY = os.getenv("ASSEMBLYAI_API_KEY", None)
ASSEMBLYAI_LANGUAGE_CODE = os.getenv("ASSEMBLYAI_LANGUAGE_CODE", "en")

DEEPGRAM_API_KEY = os.getenv("DEEPGRAM_API_KEY", None)
DEEPGRAM_LANGUAGE = os.getenv("DEEPGRAM_LANGUAGE", "en")
DEEPGRAM_MODEL = os.getenv("DEEPGRAM_MODEL", "nova-2")

# === 音频格式配置 ===
AUDIO_SAMPLE_RATE = int(os.getenv("AUDIO_SAMPLE_RATE", "16000"))
AUDIO_BUFFER_SIZE = int(os.getenv("AUDIO_BUFFER_SIZE", "4096"))
AUDIO_BUFFER_SIZE_MS = int(os.getenv("AUDIO_BUFFER_SIZE_MS", "100"))

# === 切片时长配置 ===
MAX_CHUNK_DURATION_SECONDS = int(os.getenv("MAX_CHUNK_DURATION_SECONDS", "60"))
MIN_CHUNK_DURATION_SECONDS = int(os.getenv("MIN_CHUNK_DURATION_SECONDS", "2"))

# === 语音活动检测 (VAD) ===
VAD_ENABLED = _get_bool("VAD_ENABLED", "true")
VAD_THRESHOLD = float(os.getenv("VAD_THRESHOLD", "0.3"))
VAD_SILENCE_DURATION_MS = int(os.getenv("VAD_SILENCE_DURATION_MS", "250"))

# === 调试输出 ===
DEBUG_ENABLED = _get_bool("DEBUG_ENABLED", "false")
DEBUG_OUTPUT_PATH = os.getenv("DEBUG_OUTPUT_PATH", "./debug/audio")

# === 资源限制 ===
MAX_CHUNK_SIZE_KB = int(os.getenv("MAX_CHUNK_SIZE_KB", "1024"))
MAX_BUFFER_SIZE_MB = int(os.getenv("MAX_BUFFER_SIZE_MB", "10"))
PROCESSING_TIMEOUT_MS = int(os.getenv("PROCESSING_TIMEOUT_MS", "30000"))

# ffmpeg 可执行文件（名称或绝对路径）
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")

# === 服务配置 ===
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "50071"))

# === 安全配置 ===
# 上传 PCM 大小限制（MB）
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "50"))
# CORS 允许的源（默认仅本地，可设置为 * 放开）
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost,http://127.0.0.1")

# === 日志配置 ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def load_processing_config() -> AudioProcessingConfig:
    """
    根据当前环境变量构建配置对象。

    Unknown ENGINE_TYPE / PROCESSING_MODE strings are passed through untouched;
    the engine factory reports them as configuration errors.
    """
    return AudioProcessingConfig(
        engine=ENGINE_TYPE.strip().lower(),
        processing_mode=PROCESSING_MODE.strip().lower(),
        assemblyai=AssemblyAIConfig(
            api_key=ASSEMBLYAI_API_KEY,
            language_code=ASSEMBLYAI_LANGUAGE_CODE,
        ),
        deepgram=DeepgramConfig(
            api_key=DEEPGRAM_API_KEY,
            language=DEEPGRAM_LANGUAGE,
            model=DEEPGRAM_MODEL,
        ),
        sample_rate=AUDIO_SAMPLE_RATE,
        buffer_size=AUDIO_BUFFER_SIZE,
        buffer_size_ms=AUDIO_BUFFER_SIZE_MS,
        max_chunk_duration_seconds=MAX_CHUNK_DURATION_SECONDS,
        min_chunk_duration_seconds=MIN_CHUNK_DURATION_SECONDS,
        vad=VadConfig(
            enabled=VAD_ENABLED,
            threshold=VAD_THRESHOLD,
            silence_duration_ms=VAD_SILENCE_DURATION_MS,
        ),
        debug=DebugConfig(enabled=DEBUG_ENABLED, output_path=DEBUG_OUTPUT_PATH),
        max_chunk_size_kb=MAX_CHUNK_SIZE_KB,
        max_buffer_size_mb=MAX_BUFFER_SIZE_MB,
        processing_timeout_ms=PROCESSING_TIMEOUT_MS,
        ffmpeg_binary=FFMPEG_BINARY,
    )
