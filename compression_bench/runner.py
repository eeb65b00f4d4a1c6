#!/usr/bin/env python3
"""
Compression Benchmark Runner

Measures one codec against one payload over a real HTTP round-trip:

    1. Bind an ephemeral server (random port, retried on collisions)
    2. Serve the payload with compression forced on for that codec
    3. Request it once, advertising only that codec, without decoding
    4. Time the request until the body is fully read
    5. Tear the server down, on success and failure alike

The reported algorithm is the response's Content-Encoding, not the requested
codec, so a server that silently skips compression shows up as "none".
"""

import logging
import time
from typing import Optional, Tuple, Union

import requests
import urllib3

from .errors import NegotiationError, NetworkError
from .formatting import format_bytes
from .models import BenchmarkConfig, BenchmarkResult, CodecSpec
from .server import EphemeralServer, create_benchmark_app


# Reported algorithm when the response carries no Content-Encoding
NO_ENCODING = "none"


class CompressionBenchmarkRunner:
    """
    Runs a single-codec HTTP compression benchmark.

    Each call to run() builds its own app, server and timer, so runs share no
    state other than the read-only payload.
    """

    def __init__(self, config: BenchmarkConfig = None, logger: logging.Logger = None):
        """
        Initialize the runner.

        Args:
            config: Benchmark configuration (defaults if not provided).
            logger: Logger instance (creates one if not provided).
        """
        self.config = config or BenchmarkConfig()
        self.logger = logger or logging.getLogger("BenchmarkRunner")

    def _create_server(self, app, codec: CodecSpec) -> EphemeralServer:
        """Create the (unstarted) server for one run."""
        server = self.config.server
        return EphemeralServer(
            app,
            host=server.host,
            port_min=server.port_min,
            port_max=server.port_max,
            max_bind_attempts=server.max_bind_attempts,
            startup_timeout=server.startup_timeout,
            log_level=server.log_level,
        )

    def _request_headers(self, codec: CodecSpec) -> dict:
        return {
            "Accept-Encoding": codec.token,
            "Cache-Control": "no-cache",
            "Accept": "text/plain",
        }

    def _fetch(self, url: str, codec: CodecSpec) -> Tuple[Optional[str], bytes]:
        """
        Perform the benchmarked request.

        Returns:
            (content-encoding header or None, raw undecoded body)
        """
        try:
            with requests.Session() as session:
                with session.get(
                    url,
                    headers=self._request_headers(codec),
                    stream=True,
                    timeout=self.config.request_timeout,
                ) as response:
                    # The compressed size is the measured quantity
                    response.raw.decode_content = False
                    body = response.raw.read(decode_content=False)

                    if response.status_code != 200:
                        raise NetworkError(url, f"HTTP {response.status_code}")

                    return response.headers.get("Content-Encoding"), body
        except (requests.RequestException, urllib3.exceptions.HTTPError) as e:
            raise NetworkError(url, str(e)) from e

    def run(self, codec: Union[CodecSpec, str], payload: bytes) -> BenchmarkResult:
        """
        Benchmark one codec against the payload.

        Args:
            codec: Codec to request (CodecSpec or header token).
            payload: Bytes to serve.

        Returns:
            BenchmarkResult for this run.

        Raises:
            ServerStartError: No port could be bound or the server did not start.
            NetworkError: The request failed or returned a non-200 status.
            NegotiationError: Encoding mismatch with strict_negotiation enabled.
        """
        codec = CodecSpec.parse(codec)
        route = self.config.server.route

        self.logger.info(f"Testing {codec.token} compression:")
        self.logger.info(f"Original content size: {format_bytes(len(payload))}")

        app = create_benchmark_app(payload, codec, self.config.compression, route)

        with self._create_server(app, codec) as server:
            url = server.url(route)
            self.logger.debug(f"Requesting {url}")

            start = time.perf_counter()
            content_encoding, body = self._fetch(url, codec)
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        expected = None if codec.is_control else codec.token
        received = content_encoding.strip().lower() if content_encoding else None
        negotiated = received == expected

        if not negotiated:
            if self.config.strict_negotiation:
                raise NegotiationError(codec.token, content_encoding)
            self.logger.warning(
                f"Requested {codec.token} but server responded with "
                f"{content_encoding or 'no content-encoding'}"
            )

        result = BenchmarkResult(
            algorithm=received or NO_ENCODING,
            requested=codec,
            original_size=len(payload),
            compressed_size=len(body),
            elapsed_ms=elapsed_ms,
            negotiated=negotiated,
        )

        self.logger.info(
            f"{result.algorithm}: {format_bytes(result.compressed_size)} "
            f"({result.compression_ratio:.2f}% saved) in {elapsed_ms:.2f}ms"
        )
        return result
