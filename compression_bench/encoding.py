#!/usr/bin/env python3
"""
Content-Encoding Negotiation and Encoders

Parses Accept-Encoding request headers, selects the content-coding a server
should apply, and creates streaming encoders for the supported codings.

Supported codings:
    gzip     - DEFLATE data in the gzip container (RFC 1952)
    deflate  - DEFLATE data in the zlib container (RFC 1950), as HTTP defines it
    br       - Brotli (RFC 7932)

Negotiation follows RFC 9110 section 12.5.3:
    - Each coding may carry a q-value; q=0 means "not acceptable"
    - "*" matches any coding not listed explicitly
    - A missing or empty header means only identity is acceptable
"""

import zlib
from typing import Dict, Iterable, Optional

import brotli

from .models import (
    DEFAULT_BROTLI_QUALITY,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_MEM_LEVEL,
)


# =============================================================================
# Constants
# =============================================================================

IDENTITY = "identity"

SUPPORTED_ENCODINGS = ("br", "gzip", "deflate")

# zlib window bits selecting the container format
GZIP_WBITS = 16 + zlib.MAX_WBITS
ZLIB_WBITS = zlib.MAX_WBITS


# =============================================================================
# Accept-Encoding Parsing
# =============================================================================

def parse_accept_encoding(header: Optional[str]) -> Dict[str, float]:
    """
    Parse an Accept-Encoding header into a {coding: q-value} map.

    Items with a malformed q-value are ignored. Codings are lower-cased.
    """
    accepted: Dict[str, float] = {}
    if not header:
        return accepted

    for item in header.split(","):
        coding, _, params = item.partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue

        quality = 1.0
        valid = True
        for param in params.split(";"):
            name, _, value = param.partition("=")
            if name.strip().lower() != "q":
                continue
            try:
                quality = float(value.strip())
            except ValueError:
                valid = False
                break
            if not 0.0 <= quality <= 1.0:
                valid = False
                break

        if valid:
            accepted[coding] = quality

    return accepted


def select_encoding(header: Optional[str], available: Iterable[str]) -> Optional[str]:
    """
    Choose the content-coding to apply for a request.

    Args:
        header: Raw Accept-Encoding header value (None if absent).
        available: Codings the server is willing to produce, in preference order.

    Returns:
        The selected coding, or None when the response must not be encoded.
    """
    accepted = parse_accept_encoding(header)
    if not accepted:
        return None

    best = None
    best_quality = 0.0
    for coding in available:
        coding = coding.lower()
        if coding == IDENTITY:
            continue
        quality = accepted.get(coding, accepted.get("*", 0.0))
        # Ties keep the server's preference order
        if quality > best_quality:
            best = coding
            best_quality = quality

    return best


# =============================================================================
# Encoders
# =============================================================================

class BrotliEncoder:
    """Streaming brotli encoder with the zlib compressobj interface."""

    def __init__(self, quality: int = DEFAULT_BROTLI_QUALITY):
        self._compressor = brotli.Compressor(mode=brotli.MODE_TEXT, quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.finish()


def create_encoder(
    encoding: str,
    level: int = DEFAULT_COMPRESSION_LEVEL,
    mem_level: int = DEFAULT_MEM_LEVEL,
    brotli_quality: int = DEFAULT_BROTLI_QUALITY,
):
    """
    Create a streaming encoder for a content-coding.

    The returned object exposes compress(data) -> bytes and flush() -> bytes;
    flush() finishes the stream and must be called exactly once.
    """
    encoding = encoding.lower()
    if encoding == "gzip":
        return zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS, mem_level)
    if encoding == "deflate":
        return zlib.compressobj(level, zlib.DEFLATED, ZLIB_WBITS, mem_level)
    if encoding == "br":
        return BrotliEncoder(brotli_quality)
    raise ValueError(f"Unsupported content-coding: {encoding!r}")
