#!/usr/bin/env python3
"""
Human-readable formatting for benchmark output.
"""

import math

from .models import BYTES_PER_MB

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """
    Format a byte count using base-1024 units.

    Trailing zeros are dropped, so 1536 becomes "1.5 KB" and 1048576 "1 MB".
    """
    if num_bytes == 0:
        return "0 Bytes"

    sign = "-" if num_bytes < 0 else ""
    num_bytes = abs(num_bytes)

    exponent = min(int(math.log(num_bytes, 1024)), len(SIZE_UNITS) - 1)
    # log() can land just below an exact power of 1024
    if exponent + 1 < len(SIZE_UNITS) and num_bytes >= 1024 ** (exponent + 1):
        exponent += 1

    value = f"{num_bytes / 1024 ** exponent:.{decimals}f}"
    if "." in value:
        value = value.rstrip("0").rstrip(".")
    return f"{sign}{value} {SIZE_UNITS[exponent]}"


def format_duration(elapsed_ms: float) -> str:
    return f"{elapsed_ms:.2f}ms"


def format_ratio(percent: float) -> str:
    return f"{percent:.2f}%"


def format_megabytes(num_bytes: int) -> str:
    return f"{num_bytes / BYTES_PER_MB:.2f} MB"
