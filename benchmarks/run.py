"""
Conversion Benchmark Runner

Measures PCM conversion latency against a running audio-pipeline instance.
Posts the same PCM buffer once per target format and reports elapsed time,
output size and the conversion path the service advertises for that format.

Usage:
    # Benchmark every format with a synthetic 440 Hz tone (5 s @ 16 kHz)
    python benchmarks/run.py

    # Only some formats
    python benchmarks/run.py --formats wav mp3 flac

    # Use real audio (WAV is decoded to PCM first; anything else is sent as raw s16le)
    python benchmarks/run.py --file path/to/audio.wav

    # Longer tone, several rounds per format
    python benchmarks/run.py --duration 30 --repeat 5

    # Benchmark against a different server
    python benchmarks/run.py --base-url http://localhost:50071

    # Save results to JSON
    python benchmarks/run.py --save
"""

import argparse
import json
import math
import statistics
import struct
import sys
import time
import wave
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import requests

DEFAULT_BASE_URL = "http://localhost:50071"
DEFAULT_FORMATS = ["wav", "au", "aiff", "mp3", "ogg", "flac", "aac", "m4a"]
RESULTS_DIR = Path(__file__).parent / "results"


def synth_tone(duration_s: float, sample_rate: int, freq: float = 440.0) -> bytes:
    """Generate a mono s16le sine tone."""
    n = int(duration_s * sample_rate)
    samples = (int(12000 * math.sin(2 * math.pi * freq * i / sample_rate)) for i in range(n))
    return struct.pack(f"<{n}h", *samples)


def load_pcm(file_path: Path, sample_rate: int) -> tuple[bytes, int]:
    """Read PCM from a WAV (frames + its own rate) or a raw s16le file (given rate)."""
    if file_path.suffix.lower() == ".wav":
        with wave.open(str(file_path), "rb") as wf:
            if wf.getsampwidth() != 2 or wf.getnchannels() != 1:
                print(f"Error: {file_path.name} must be 16-bit mono")
                sys.exit(1)
            return wf.readframes(wf.getnframes()), wf.getframerate()

    return file_path.read_bytes(), sample_rate


def get_format_info(base_url: str) -> dict[str, dict[str, Any]]:
    """Fetch the capability report from GET /v1/audio/formats."""
    resp = requests.get(f"{base_url}/v1/audio/formats", timeout=5)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return {f["format"]: f for f in data.get("formats", [])}


def run_benchmark(
    pcm: bytes,
    sample_rate: int,
    fmt: str,
    base_url: str,
    repeat: int = 1,
) -> dict[str, Any]:
    """Convert the same buffer `repeat` times and summarise the latencies."""
    timings: list[float] = []
    output_size = 0

    for _ in range(repeat):
        start_time = time.time()
        resp = requests.post(
            f"{base_url}/v1/audio/convert",
            files={"file": ("audio.pcm", pcm, "application/octet-stream")},
            data={"format": fmt, "sample_rate": str(sample_rate)},
            timeout=600,
        )
        elapsed = time.time() - start_time

        if resp.status_code != 200:
            return {
                "format": fmt,
                "error": f"HTTP {resp.status_code}: {resp.text[:200]}",
                "elapsed_seconds": elapsed,
            }

        timings.append(elapsed)
        output_size = len(resp.content)

    audio_duration = len(pcm) / 2 / sample_rate

    return {
        "format": fmt,
        "audio_duration_s": round(audio_duration, 2),
        "input_bytes": len(pcm),
        "output_bytes": output_size,
        "ratio": round(output_size / len(pcm), 3) if pcm else 0,
        "mean_ms": round(statistics.mean(timings) * 1000, 1),
        "min_ms": round(min(timings) * 1000, 1),
        "max_ms": round(max(timings) * 1000, 1),
        "rounds": len(timings),
    }


def print_result(result: dict[str, Any]) -> None:
    """Print a single benchmark result."""
    if "error" in result:
        print(f"  ERROR: {result['error']}")
        return

    print(f"  Mean: {result['mean_ms']:.1f}ms (min {result['min_ms']:.1f}, max {result['max_ms']:.1f})")
    print(f"  Output: {result['output_bytes']} bytes ({result['ratio']:.3f}x input)")


def print_summary_table(results: list[dict[str, Any]], format_infos: dict[str, dict[str, Any]]) -> None:
    """Print a summary table of all formats."""
    print("\n" + "=" * 90)
    print(f"{'Format':<8} {'Method':<34} {'Mean':>9} {'Min':>9} {'Max':>9} {'Bytes':>12}")
    print("-" * 90)
    for r in results:
        method = format_infos.get(r["format"], {}).get("preferred_method", "?")
        if "error" in r:
            print(f"{r['format']:<8} {method:<34} {'ERROR':>9}")
            continue
        print(
            f"{r['format']:<8} {method:<34} {r['mean_ms']:>7.1f}ms {r['min_ms']:>7.1f}ms "
            f"{r['max_ms']:>7.1f}ms {r['output_bytes']:>12}"
        )
    print("=" * 90)


def save_results(
    results: list[dict[str, Any]],
    format_infos: dict[str, dict[str, Any]],
    source: str,
) -> Path:
    """Save benchmark results to JSON file."""
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(tz=UTC).strftime("%Y%m%d_%H%M%S")
    output_path = RESULTS_DIR / f"conversion_{timestamp}.json"

    payload = {
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "source": source,
        "formats": format_infos,
        "results": results,
    }

    output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
    return output_path


def main() -> None:
    parser = argparse.ArgumentParser(description="PCM Conversion Benchmark Runner")
    parser.add_argument("--file", type=str, help="16-bit mono WAV or raw s16le PCM file")
    parser.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="Server base URL")
    parser.add_argument(
        "--formats",
        nargs="+",
        default=DEFAULT_FORMATS,
        metavar="FORMAT",
        help="Target formats to benchmark",
    )
    parser.add_argument("--sample-rate", type=int, default=16000, help="Rate of the PCM source")
    parser.add_argument("--duration", type=float, default=5.0, help="Synthetic tone length (s)")
    parser.add_argument("--repeat", type=int, default=3, help="Requests per format")
    parser.add_argument("--save", action="store_true", help="Save results to benchmarks/results/")
    args = parser.parse_args()

    # 1. Check server
    print(f"Connecting to {args.base_url}...")
    try:
        format_infos = get_format_info(args.base_url)
    except requests.ConnectionError:
        print(f"Error: cannot connect to {args.base_url}. Is the service running?")
        sys.exit(1)

    # 2. PCM source
    if args.file:
        file_path = Path(args.file)
        if not file_path.exists():
            print(f"Error: file not found: {file_path}")
            sys.exit(1)
        pcm, sample_rate = load_pcm(file_path, args.sample_rate)
        source = file_path.name
    else:
        sample_rate = args.sample_rate
        pcm = synth_tone(args.duration, sample_rate)
        source = f"tone_{args.duration:g}s_{sample_rate}Hz"

    print(f"Source: {source} ({len(pcm)} bytes)\n")

    # 3. One benchmark per format
    results: list[dict[str, Any]] = []
    for i, fmt in enumerate(args.formats):
        print(f"[{i + 1}/{len(args.formats)}] {fmt}")
        result = run_benchmark(pcm, sample_rate, fmt, args.base_url, repeat=args.repeat)
        print_result(result)
        results.append(result)
        print()

    print_summary_table(results, format_infos)

    if args.save:
        output_path = save_results(results, format_infos, source)
        print(f"\nResults saved to: {output_path}")


if __name__ == "__main__":
    main()
