#!/usr/bin/env python3
"""
PCM Conversion Demo Script

生成一段测试音，依次转换为所有支持的格式，并打印每种格式的转换路径与耗时。
输出文件写入 examples/output/。

Usage:
    python examples/demo_conversion.py
"""

import math
import os
import struct
import sys
import time
from pathlib import Path

# 添加项目根目录到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from audio_pipeline.core.errors import ConversionFailed
from audio_pipeline.core.formats import FormatTag
from audio_pipeline.services.converter import AudioConverter

SAMPLE_RATE = 16000
OUTPUT_DIR = Path(__file__).parent / "output"


def make_tone(seconds: float = 2.0) -> bytes:
    n = int(seconds * SAMPLE_RATE)
    return struct.pack(f"<{n}h", *(int(10000 * math.sin(2 * math.pi * 440 * i / SAMPLE_RATE)) for i in range(n)))


def main():
    print("=" * 60)
    print("🎛️  PCM Conversion Demo")
    print("=" * 60)

    pcm = make_tone()
    print(f"📁 Source: 440 Hz tone, {len(pcm)} bytes @ {SAMPLE_RATE}Hz")
    print()

    converter = AudioConverter()
    OUTPUT_DIR.mkdir(exist_ok=True)

    for tag in FormatTag:
        info = converter.get_conversion_info(tag.value)
        perf = converter.get_performance_info(tag.value)
        print(f"▶ {tag.value:<5} via {info.preferred_method} ({perf.speed}, deps: {perf.dependencies})")

        start = time.time()
        try:
            data = converter.convert(pcm, SAMPLE_RATE, tag)
        except ConversionFailed as e:
            print(f"  ❌ {e}")
            continue
        elapsed = (time.time() - start) * 1000

        out = OUTPUT_DIR / f"tone.{tag.value}"
        out.write_bytes(data)
        print(f"  ✅ {len(data)} bytes in {elapsed:.1f}ms -> {out}")

    print()
    print("=" * 60)
    print("✅ Demo completed")
    print("=" * 60)


if __name__ == "__main__":
    main()
