"""
HTTP Compression Benchmark

Measure compressed size, transfer time and savings of HTTP response
compression (gzip, deflate, brotli) through a real client/server round-trip.

Architecture:
    Orchestrator
        │
        ├── Test Data Provider (remote sources → synthetic fallback)
        │
        ├── for each codec, sequentially:
        ▼
    Runner
        ├── Ephemeral Server (FastAPI + uvicorn, random port)
        │       └── CompressionMiddleware (negotiated, threshold 0)
        │
        └── HTTP client (requests, Accept-Encoding: <codec>, undecoded body)

Each run has its own server, port and timer; the payload is the only shared
(read-only) state.

Usage:
    from compression_bench import BenchmarkOrchestrator, CodecSpec

    orchestrator = BenchmarkOrchestrator()
    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE, CodecSpec.BROTLI])

    for r in results:
        print(f"{r.algorithm}: {r.compressed_size} bytes, {r.compression_ratio:.2f}%")

    # Single codec
    from compression_bench import CompressionBenchmarkRunner

    result = CompressionBenchmarkRunner().run("gzip", b"hello " * 10000)
"""

from .errors import (
    BenchmarkError,
    DataFetchError,
    NegotiationError,
    NetworkError,
    ServerStartError,
)
from .models import (
    BenchmarkConfig,
    BenchmarkFailure,
    BenchmarkResult,
    CodecSpec,
)
from .orchestrator import BenchmarkOrchestrator
from .payload import TestDataProvider, generate_test_data
from .runner import CompressionBenchmarkRunner
from .server import EphemeralServer, create_benchmark_app

__version__ = "0.1.0"
__all__ = [
    # Core
    "BenchmarkOrchestrator",
    "CompressionBenchmarkRunner",
    "EphemeralServer",
    "create_benchmark_app",
    # Data
    "TestDataProvider",
    "generate_test_data",
    # Models
    "BenchmarkConfig",
    "BenchmarkFailure",
    "BenchmarkResult",
    "CodecSpec",
    # Errors
    "BenchmarkError",
    "DataFetchError",
    "NegotiationError",
    "NetworkError",
    "ServerStartError",
]
