#!/usr/bin/env python3
"""
Benchmark Orchestrator

Sequences the runner across a list of codecs against one shared payload:

    Provider ──payload──▶ Runner(gzip) ──▶ Runner(deflate) ──▶ Runner(br)
                               │                 │                 │
                               ▼                 ▼                 ▼
                                     results (invocation order)

Runs are strictly sequential: codec N+1 starts only after codec N's server
has released its port. A failing codec is logged and skipped, the remaining
codecs still run (best-effort batch).
"""

import logging
import sys
from typing import List, Optional, Sequence, Union

from .errors import BenchmarkError
from .formatting import format_bytes
from .models import BenchmarkConfig, BenchmarkFailure, BenchmarkResult, CodecSpec
from .payload import TestDataProvider
from .report import build_rows, export_json, render_table
from .runner import CompressionBenchmarkRunner


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure logging.

    Raises:
        ValueError: If `level` is not a logging level name.
    """
    level_value = logging.getLevelName(str(level).upper())
    if not isinstance(level_value, int):
        raise ValueError(f"Invalid log level: {level}")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level_value,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


class BenchmarkOrchestrator:
    """
    Runs the compression benchmark for each codec and collects the results.
    """

    def __init__(
        self,
        config: BenchmarkConfig = None,
        provider: TestDataProvider = None,
        runner: CompressionBenchmarkRunner = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Benchmark configuration (defaults if not provided).
            provider: Payload provider (built from config if not provided).
            runner: Benchmark runner (built from config if not provided).
        """
        self.config = config or BenchmarkConfig()
        self.logger = logging.getLogger("BenchmarkOrchestrator")
        self.provider = provider or TestDataProvider.from_config(self.config.payload)
        self.runner = runner or CompressionBenchmarkRunner(self.config)

        self.payload: Optional[bytes] = None
        self.results: List[BenchmarkResult] = []
        self.failures: List[BenchmarkFailure] = []

    def compare(self, codecs: Sequence[Union[CodecSpec, str]] = None) -> List[BenchmarkResult]:
        """
        Benchmark each codec in order against a single payload.

        Args:
            codecs: Codecs to run (defaults to the configured list).

        Returns:
            Results for the codecs that succeeded, in invocation order.
        """
        codecs = [CodecSpec.parse(c) for c in (self.config.codecs if codecs is None else codecs)]

        self.results = []
        self.failures = []

        self.logger.info("Fetching test data...")
        self.payload = self.provider.get_payload()
        self.logger.info(f"Using {format_bytes(len(self.payload))} of test data")

        self.logger.info("Testing different compression algorithms...")
        for codec in codecs:
            try:
                result = self.runner.run(codec, self.payload)
            except BenchmarkError as e:
                self.logger.error(f"{codec.token} benchmark failed: {e}")
                self.failures.append(BenchmarkFailure(codec, e))
                continue
            self.results.append(result)

        if not self.results and codecs:
            self.logger.error(f"Test failed: all {len(codecs)} codec runs failed")
        elif self.failures:
            failed = ", ".join(f.codec.token for f in self.failures)
            self.logger.warning(
                f"{len(self.failures)} of {len(codecs)} codec runs failed: {failed}"
            )

        return list(self.results)

    def print_report(self):
        """Print the results table and any failures to stdout."""
        print("\n" + "=" * 50)
        print("FINAL RESULTS")
        print("=" * 50)
        print(render_table(build_rows(self.results)))

        for failure in self.failures:
            print(f"FAILED {failure.codec.token}: {failure.reason}")

    def run(self, codecs: Sequence[Union[CodecSpec, str]] = None) -> List[BenchmarkResult]:
        """Compare codecs, print the report and export it when configured."""
        results = self.compare(codecs)
        self.print_report()

        if self.config.export_path:
            path = export_json(
                results,
                self.config.export_path,
                payload_size=len(self.payload or b""),
                failures=self.failures,
            )
            self.logger.info(f"Results exported to {path}")

        return results
