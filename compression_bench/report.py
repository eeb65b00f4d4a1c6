#!/usr/bin/env python3
"""
Benchmark Report

Pydantic row models for the results table, console rendering and JSON export.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Sequence

from pydantic import BaseModel, Field

from .formatting import format_bytes, format_duration, format_megabytes, format_ratio
from .models import BenchmarkFailure, BenchmarkResult


# =============================================================================
# Pydantic Models
# =============================================================================

class ResultRow(BaseModel):
    """One formatted row of the results table."""
    algorithm: str = Field(..., description="Content-encoding applied by the server")
    original_size: str = Field(..., alias="originalSize", description="Payload size")
    compressed_size: str = Field(..., alias="compressedSize", description="Bytes received")
    compression_ratio: str = Field(..., alias="compressionRatio", description="Percent saved")
    time_taken: str = Field(..., alias="timeTaken", description="Request wall-clock time")
    savings_in_mb: str = Field(..., alias="savingsInMB", description="Megabytes saved")

    @classmethod
    def from_result(cls, result: BenchmarkResult) -> "ResultRow":
        return cls(
            algorithm=result.algorithm,
            originalSize=format_bytes(result.original_size),
            compressedSize=format_bytes(result.compressed_size),
            compressionRatio=format_ratio(result.compression_ratio),
            timeTaken=format_duration(result.elapsed_ms),
            savingsInMB=format_megabytes(result.savings_bytes),
        )


class FailureRow(BaseModel):
    """A codec that produced no result."""
    codec: str = Field(..., description="Requested codec")
    reason: str = Field(..., description="Failure reason")


class BenchmarkReport(BaseModel):
    """Exported benchmark report."""
    generated_at: str = Field(..., description="ISO timestamp")
    payload_size: int = Field(..., ge=0, description="Payload size in bytes")
    rows: List[ResultRow] = Field(default=[], description="Formatted results")
    results: List[dict] = Field(default=[], description="Raw numeric results")
    failures: List[FailureRow] = Field(default=[], description="Failed codecs")


# =============================================================================
# Rendering
# =============================================================================

def build_rows(results: Sequence[BenchmarkResult]) -> List[ResultRow]:
    return [ResultRow.from_result(r) for r in results]


def render_table(rows: Sequence[ResultRow]) -> str:
    """Render rows as a fixed-width text table."""
    if not rows:
        return "(no results)"

    header = (f"{'algorithm':<10} {'originalSize':<14} {'compressedSize':<16} "
              f"{'compressionRatio':<18} {'timeTaken':<12} {'savingsInMB':<12}")
    lines = [header, "-" * len(header)]

    for row in rows:
        r = row.model_dump(by_alias=True)
        lines.append(f"{r['algorithm']:<10} {r['originalSize']:<14} {r['compressedSize']:<16} "
                     f"{r['compressionRatio']:<18} {r['timeTaken']:<12} {r['savingsInMB']:<12}")

    lines.append("-" * len(header))
    return "\n".join(lines)


def export_json(
    results: Sequence[BenchmarkResult],
    path: str,
    payload_size: int,
    failures: Sequence[BenchmarkFailure] = (),
) -> str:
    """
    Write results to a JSON file.

    Returns:
        Path written.
    """
    report = BenchmarkReport(
        generated_at=datetime.now().isoformat(),
        payload_size=payload_size,
        rows=build_rows(results),
        results=[r.to_dict() for r in results],
        failures=[FailureRow(codec=f.codec.token, reason=f.reason) for f in failures],
    )

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        json.dump(report.model_dump(by_alias=True), f, indent=2)

    return str(out)
