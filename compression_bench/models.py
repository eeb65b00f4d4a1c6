#!/usr/bin/env python3
"""
Data Models for the Compression Benchmark

This module contains the codec enum, the per-run result record and the
configuration dataclasses used by the runner and orchestrator.
"""

import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# =============================================================================
# Constants
# =============================================================================

# Project Gutenberg complete works of Shakespeare (~5.5MB), primary then backup
DEFAULT_DATA_SOURCES = [
    "https://www.gutenberg.org/files/100/100-0.txt",
    "https://www.gutenberg.org/cache/epub/100/pg100.txt",
]

DEFAULT_USER_AGENT = "CompressionTest/1.0 (Educational Research)"

# Per-attempt timeout for fetching remote test data (seconds)
DEFAULT_FETCH_TIMEOUT = 10.0

# Size of the synthetic payload used when all sources fail (5MB)
DEFAULT_FALLBACK_SIZE = 5 * 1024 * 1024

# Ephemeral server port range (inclusive)
DEFAULT_PORT_MIN = 3000
DEFAULT_PORT_MAX = 3999

# Bounded retries when the chosen port is already taken
DEFAULT_MAX_BIND_ATTEMPTS = 10

# Seconds to wait for uvicorn to report it is serving
DEFAULT_STARTUP_TIMEOUT = 10.0

DEFAULT_ROUTE = "/test"

# zlib settings for gzip/deflate, brotli quality for br
DEFAULT_COMPRESSION_LEVEL = 6
DEFAULT_MEM_LEVEL = 8
DEFAULT_BROTLI_QUALITY = 4

BYTES_PER_MB = 1024 * 1024


# =============================================================================
# Enums
# =============================================================================

class CodecSpec(Enum):
    """Content-codings the benchmark can request."""
    GZIP = "gzip"
    DEFLATE = "deflate"
    BROTLI = "br"
    IDENTITY = "identity"

    @property
    def token(self) -> str:
        """Token used in Accept-Encoding / Content-Encoding headers."""
        return self.value

    @property
    def is_control(self) -> bool:
        """True for the uncompressed control run."""
        return self is CodecSpec.IDENTITY

    @classmethod
    def parse(cls, value: Union["CodecSpec", str]) -> "CodecSpec":
        """Resolve a codec from a member, header token, name or alias."""
        if isinstance(value, cls):
            return value

        key = str(value).strip().lower()
        aliases = {"brotli": cls.BROTLI, "none": cls.IDENTITY}
        if key in aliases:
            return aliases[key]

        for codec in cls:
            if key in (codec.value, codec.name.lower()):
                return codec

        valid = [c.value for c in cls]
        raise ValueError(f"Unknown codec: {value!r}. Valid: {valid}")


DEFAULT_CODECS = [CodecSpec.GZIP, CodecSpec.DEFLATE, CodecSpec.BROTLI]


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class BenchmarkResult:
    """
    Measurement from one runner invocation.

    `algorithm` is the content-encoding the server actually applied, taken
    from the response headers ("none" when the response was not encoded).
    """
    algorithm: str
    requested: CodecSpec
    original_size: int
    compressed_size: int
    elapsed_ms: float
    negotiated: bool = True

    @property
    def savings_bytes(self) -> int:
        return self.original_size - self.compressed_size

    @property
    def savings_mb(self) -> float:
        return self.savings_bytes / BYTES_PER_MB

    @property
    def compression_ratio(self) -> float:
        """Percentage of the original size eliminated by compression."""
        if self.original_size == 0:
            return 0.0
        return self.savings_bytes / self.original_size * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "requested": self.requested.token,
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
            "elapsed_ms": self.elapsed_ms,
            "compression_ratio": self.compression_ratio,
            "savings_bytes": self.savings_bytes,
            "negotiated": self.negotiated,
        }


@dataclass
class BenchmarkFailure:
    """A codec whose benchmark run raised instead of producing a result."""
    codec: CodecSpec
    error: Exception

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass
class PayloadConfig:
    """Test data acquisition settings."""
    sources: List[str] = field(default_factory=lambda: list(DEFAULT_DATA_SOURCES))
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    fallback_size: int = DEFAULT_FALLBACK_SIZE
    user_agent: str = DEFAULT_USER_AGENT
    seed: Optional[int] = None


@dataclass
class ServerConfig:
    """Ephemeral server settings."""
    host: str = "127.0.0.1"
    port_min: int = DEFAULT_PORT_MIN
    port_max: int = DEFAULT_PORT_MAX
    max_bind_attempts: int = DEFAULT_MAX_BIND_ATTEMPTS
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT
    route: str = DEFAULT_ROUTE
    log_level: str = "warning"


@dataclass
class CompressionConfig:
    """Encoder parameters applied by the server middleware."""
    level: int = DEFAULT_COMPRESSION_LEVEL
    mem_level: int = DEFAULT_MEM_LEVEL
    brotli_quality: int = DEFAULT_BROTLI_QUALITY


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark session."""
    codecs: List[CodecSpec] = field(default_factory=lambda: list(DEFAULT_CODECS))

    payload: PayloadConfig = field(default_factory=PayloadConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)

    # Raise NegotiationError instead of reporting a mismatch as a data point
    strict_negotiation: bool = False
    # No timeout by default: the request is the time under test
    request_timeout: Optional[float] = None
    export_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str) -> "BenchmarkConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict) -> "BenchmarkConfig":
        payload = data.get("payload", {})
        server = data.get("server", {})
        compression = data.get("compression", {})
        bench = data.get("benchmark", {})
        codecs = data.get("codecs")

        return cls(
            codecs=[CodecSpec.parse(c) for c in codecs] if codecs else list(DEFAULT_CODECS),
            payload=PayloadConfig(
                sources=list(payload.get("sources", DEFAULT_DATA_SOURCES)),
                fetch_timeout=payload.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT),
                fallback_size=payload.get("fallback_size", DEFAULT_FALLBACK_SIZE),
                user_agent=payload.get("user_agent", DEFAULT_USER_AGENT),
                seed=payload.get("seed"),
            ),
            server=ServerConfig(
                host=server.get("host", "127.0.0.1"),
                port_min=server.get("port_min", DEFAULT_PORT_MIN),
                port_max=server.get("port_max", DEFAULT_PORT_MAX),
                max_bind_attempts=server.get("max_bind_attempts", DEFAULT_MAX_BIND_ATTEMPTS),
                startup_timeout=server.get("startup_timeout", DEFAULT_STARTUP_TIMEOUT),
                route=server.get("route", DEFAULT_ROUTE),
                log_level=server.get("log_level", "warning"),
            ),
            compression=CompressionConfig(
                level=compression.get("level", DEFAULT_COMPRESSION_LEVEL),
                mem_level=compression.get("mem_level", DEFAULT_MEM_LEVEL),
                brotli_quality=compression.get("brotli_quality", DEFAULT_BROTLI_QUALITY),
            ),
            strict_negotiation=bench.get("strict_negotiation", False),
            request_timeout=bench.get("request_timeout"),
            export_path=bench.get("export_path"),
            log_level=data.get("logging", {}).get("level", "INFO"),
            log_file=data.get("logging", {}).get("file"),
        )

    def to_dict(self) -> Dict:
        """Convert config to dictionary."""
        return {
            "codecs": [c.token for c in self.codecs],
            "payload": {
                "sources": list(self.payload.sources),
                "fetch_timeout": self.payload.fetch_timeout,
                "fallback_size": self.payload.fallback_size,
                "user_agent": self.payload.user_agent,
                "seed": self.payload.seed,
            },
            "server": {
                "host": self.server.host,
                "port_min": self.server.port_min,
                "port_max": self.server.port_max,
                "max_bind_attempts": self.server.max_bind_attempts,
                "startup_timeout": self.server.startup_timeout,
                "route": self.server.route,
                "log_level": self.server.log_level,
            },
            "compression": {
                "level": self.compression.level,
                "mem_level": self.compression.mem_level,
                "brotli_quality": self.compression.brotli_quality,
            },
            "benchmark": {
                "strict_negotiation": self.strict_negotiation,
                "request_timeout": self.request_timeout,
                "export_path": self.export_path,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }
