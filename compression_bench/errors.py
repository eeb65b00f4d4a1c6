#!/usr/bin/env python3
"""
Exceptions for the Compression Benchmark

All errors raised by the harness derive from BenchmarkError so the
orchestrator can apply its best-effort policy with a single except clause.
"""

from typing import Optional


class BenchmarkError(Exception):
    """Base class for benchmark failures."""


class DataFetchError(BenchmarkError):
    """A single upstream data source could not supply a payload."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch from {source}: {reason}")


class ServerStartError(BenchmarkError):
    """The ephemeral server could not bind or did not start serving."""

    def __init__(self, reason: str, attempts: int = 0):
        self.reason = reason
        self.attempts = attempts
        if attempts:
            super().__init__(f"{reason} (after {attempts} attempts)")
        else:
            super().__init__(reason)


class NetworkError(BenchmarkError):
    """The benchmarked request did not complete."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class NegotiationError(BenchmarkError):
    """The response content-encoding differs from the requested codec."""

    def __init__(self, requested: str, received: Optional[str]):
        self.requested = requested
        self.received = received
        super().__init__(
            f"Requested encoding {requested!r} but server responded with "
            f"{received or 'no content-encoding'!r}"
        )
