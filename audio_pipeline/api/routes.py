"""
API routes for PCM conversion and capability reporting.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from audio_pipeline.config import MAX_UPLOAD_SIZE_MB
from audio_pipeline.core.errors import ConversionFailed, UnsupportedFormat
from audio_pipeline.core.factory import get_supported_engines
from audio_pipeline.core.formats import (
    MAX_SAMPLE_RATE,
    MEDIA_TYPES,
    ConversionInfo,
    canonicalize,
    list_formats,
)

logger = logging.getLogger(__name__)


# API Response Models
class PerformanceModel(BaseModel):
    speed: str
    resource_usage: str
    dependencies: str


class FormatInfo(BaseModel):
    """Single entry for GET /v1/audio/formats"""

    format: str
    supported: bool
    native_supported: bool = Field(
        description="In-process conversion available (native writer or ffmpeg-python library)"
    )
    process_supported: bool = Field(description="External ffmpeg process can produce this format")
    preferred_method: str
    pure_native: bool = Field(
        description="Written without any external binary or library (wav, au, aiff only)"
    )
    performance: PerformanceModel


class FormatsResponse(BaseModel):
    formats: list[FormatInfo]


class EngineInfo(BaseModel):
    engine_type: str
    name: str
    supports_streaming: bool
    supports_batch: bool
    required_config_keys: list[str]
    supported_languages: list[str]
    max_streaming_chunk_bytes: int
    recommended_buffer_ms: int
    requires_conversion: bool
    input_format: str


class EnginesResponse(BaseModel):
    engines: list[EngineInfo]
    current: str | None


# Router
router = APIRouter()


def _format_info(request: Request, info: ConversionInfo) -> FormatInfo:
    converter = request.app.state.converter
    perf = converter.get_performance_info(info.format)
    return FormatInfo(
        format=info.format,
        supported=info.supported,
        native_supported=info.native_supported,
        process_supported=info.process_supported,
        preferred_method=info.preferred_method,
        pure_native=converter.is_native_supported(info.format),
        performance=PerformanceModel(**asdict(perf)),
    )


@router.get("/v1/audio/formats")
async def list_audio_formats(request: Request) -> FormatsResponse:
    """All known format tags with the conversion paths able to produce them."""
    return FormatsResponse(formats=[_format_info(request, info) for info in list_formats()])


@router.get("/v1/audio/formats/{fmt}")
async def get_audio_format(request: Request, fmt: str) -> FormatInfo:
    """Capability report for one format. Unknown formats report supported=false."""
    info = request.app.state.converter.get_conversion_info(fmt)
    return _format_info(request, info)


@router.post("/v1/audio/convert")
async def convert_audio(
    request: Request,
    file: UploadFile = File(..., description="Raw PCM (signed 16-bit little-endian, mono)"),
    sample_rate: int = Form(16000, description="Sample rate of the uploaded PCM"),
    format: str = Form("wav", description="Target format: wav, au, aiff, mp3, ogg, flac, aac, m4a"),
) -> Response:
    """
    Convert an uploaded raw PCM buffer into the requested container/codec.

    The conversion runs in a worker thread: the ffmpeg fallback blocks until
    the subprocess exits.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    # 1. 格式校验（先做，不支持的格式不读取上传内容）
    try:
        tag = canonicalize(format)
    except UnsupportedFormat as e:
        logger.warning(f"[{request_id}] Unsupported format requested: {format}")
        raise HTTPException(status_code=400, detail=str(e)) from None

    if not 0 < sample_rate <= MAX_SAMPLE_RATE:
        raise HTTPException(
            status_code=400,
            detail=f"sample_rate must be between 1 and {MAX_SAMPLE_RATE}",
        )

    # 2. 文件大小校验
    file.file.seek(0, 2)
    file_size_bytes = file.file.tell()
    file_size_mb = file_size_bytes / (1024 * 1024)

    if file_size_mb > MAX_UPLOAD_SIZE_MB:
        logger.warning(
            f"[{request_id}] File too large: {file_size_mb:.2f}MB (max: {MAX_UPLOAD_SIZE_MB}MB)"
        )
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds maximum allowed ({MAX_UPLOAD_SIZE_MB} MB)",
        )

    file.file.seek(0)
    pcm = await file.read()

    logger.info(
        f"[{request_id}] Converting {file_size_bytes} bytes @ {sample_rate}Hz -> {tag.value}"
    )

    converter = request.app.state.converter
    try:
        data = await run_in_threadpool(converter.convert, pcm, sample_rate, tag)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConversionFailed as e:
        logger.error(f"[{request_id}] {e}")
        raise HTTPException(status_code=502, detail=str(e)) from None
    except Exception as e:
        logger.error(f"[{request_id}] Unexpected error: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error occurred. (Request ID: {request_id})",
        ) from None

    return Response(
        content=data,
        media_type=MEDIA_TYPES[tag],
        headers={"Content-Disposition": f'attachment; filename="audio.{tag.value}"'},
    )


@router.get("/v1/engines")
async def list_engines(request: Request) -> EnginesResponse:
    """Every known transcription engine and what processing modes it supports."""
    engine = getattr(request.app.state, "engine", None)
    return EnginesResponse(
        engines=[
            EngineInfo(
                **{
                    **asdict(descriptor),
                    "engine_type": engine_type.value,
                    "required_config_keys": list(descriptor.required_config_keys),
                    "supported_languages": list(descriptor.supported_languages),
                }
            )
            for engine_type, descriptor in get_supported_engines().items()
        ],
        current=engine.name if engine is not None else None,
    )


@router.get("/v1/engines/current")
async def get_current_engine(request: Request) -> dict[str, object]:
    """The engine built at startup, its processing mode and capability descriptor."""
    engine = request.app.state.engine
    descriptor = engine.get_configuration()
    return {
        "name": engine.name,
        "engine_type": descriptor.engine_type.value,
        "processing_mode": request.app.state.processing_mode,
        "supports_streaming": descriptor.supports_streaming,
        "supports_batch": descriptor.supports_batch,
    }
