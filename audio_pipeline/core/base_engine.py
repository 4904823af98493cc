"""
转录引擎抽象接口定义。
使用 Protocol 实现结构化子类型 (Structural Subtyping)。

The gate only needs the capability flags and the initialize() lifecycle hook;
the network protocol of each engine is its own business.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from audio_pipeline.core.processing_config import EngineType


@dataclass(frozen=True)
class EngineConfiguration:
    """
    Capability descriptor of an engine type.

    Frozen: used for read-only enumeration (GET /v1/engines) and never mutated.
    """

    engine_type: EngineType
    name: str
    supports_streaming: bool = False
    supports_batch: bool = False
    required_config_keys: tuple[str, ...] = ()
    supported_languages: tuple[str, ...] = ()
    max_streaming_chunk_bytes: int = 0
    recommended_buffer_ms: int = 100
    requires_conversion: bool = False
    input_format: str = "wav"


@runtime_checkable
class TranscriptionEngine(Protocol):
    """
    网络转录引擎抽象接口。
    所有引擎实现必须遵循此接口。
    """

    @property
    def name(self) -> str:
        """Display name used in logs and errors."""
        ...

    def supports_streaming_mode(self) -> bool:
        ...

    def supports_batch_mode(self) -> bool:
        ...

    def initialize(self) -> None:
        """
        Lifecycle hook, called once by the factory after mode validation.
        May set up network clients and may fail.
        """
        ...

    def get_configuration(self) -> EngineConfiguration:
        ...

    def shutdown(self) -> None:
        """释放网络会话。服务关闭时调用。"""
        ...
