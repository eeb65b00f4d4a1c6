#!/usr/bin/env python3
"""
Response Compression Middleware

ASGI middleware that applies a negotiated content-coding to HTTP responses.

Unlike the usual web-server defaults, compression is forced on:
    - threshold defaults to 0, so responses of every size are compressed
    - the filter defaults to "always compress", so every content type qualifies

Encoding selection still follows the client's Accept-Encoding header. A
response is only encoded when the client accepts the configured coding.

Usage:
    app.add_middleware(CompressionMiddleware, encodings=["gzip"])
"""

from typing import Callable, Iterable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .encoding import IDENTITY, SUPPORTED_ENCODINGS, create_encoder, select_encoding
from .models import (
    DEFAULT_BROTLI_QUALITY,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_MEM_LEVEL,
)


def compress_always(headers: Headers) -> bool:
    """Response filter that accepts every response."""
    return True


class CompressionMiddleware:
    """
    Compress responses with the best coding acceptable to the client.

    Args:
        app: Wrapped ASGI application.
        encodings: Codings this server may apply, in preference order.
        level: zlib compression level for gzip/deflate.
        mem_level: zlib memory level for gzip/deflate.
        brotli_quality: Brotli quality for br.
        threshold: Minimum body size in bytes to compress (0 compresses all).
        filter: Callable receiving the response headers; False skips compression.
    """

    def __init__(
        self,
        app: ASGIApp,
        encodings: Iterable[str] = SUPPORTED_ENCODINGS,
        level: int = DEFAULT_COMPRESSION_LEVEL,
        mem_level: int = DEFAULT_MEM_LEVEL,
        brotli_quality: int = DEFAULT_BROTLI_QUALITY,
        threshold: int = 0,
        filter: Callable[[Headers], bool] = compress_always,
    ):
        self.app = app
        self.encodings = [e.lower() for e in encodings if e.lower() != IDENTITY]
        for encoding in self.encodings:
            if encoding not in SUPPORTED_ENCODINGS:
                raise ValueError(f"Unsupported content-coding: {encoding!r}")
        self.level = level
        self.mem_level = mem_level
        self.brotli_quality = brotli_quality
        self.threshold = threshold
        self.filter = filter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_headers = Headers(scope=scope)
        encoding = select_encoding(request_headers.get("accept-encoding"), self.encodings)
        responder = CompressionResponder(self, encoding)
        await responder(scope, receive, send)


class CompressionResponder:
    """Per-request state for CompressionMiddleware."""

    def __init__(self, middleware: CompressionMiddleware, encoding: Optional[str]):
        self.middleware = middleware
        self.encoding = encoding
        self.send: Send = None
        self.initial_message: Message = {}
        self.started = False
        self.encoder = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.send = send
        await self.middleware.app(scope, receive, self.send_with_compression)

    def _should_compress(self, headers: MutableHeaders, body_size: int, more_body: bool) -> bool:
        if headers.get("content-encoding", IDENTITY).lower() != IDENTITY:
            return False
        if "no-transform" in headers.get("cache-control", "").lower():
            return False
        if not self.middleware.filter(headers):
            return False
        # Vary whenever an encoding could have been chosen, even if the
        # client declined; with no encodings the response never varies
        if self.middleware.encodings:
            headers.add_vary_header("Accept-Encoding")
        if self.encoding is None:
            return False
        if not more_body and body_size < self.middleware.threshold:
            return False
        return True

    async def send_with_compression(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            # Hold the start message until the first body chunk is seen
            self.initial_message = message
            return

        if message_type != "http.response.body":
            await self.send(message)
            return

        body = message.get("body", b"")
        more_body = message.get("more_body", False)

        if not self.started:
            self.started = True
            headers = MutableHeaders(raw=self.initial_message["headers"])

            if not self._should_compress(headers, len(body), more_body):
                await self.send(self.initial_message)
                await self.send(message)
                return

            mw = self.middleware
            self.encoder = create_encoder(
                self.encoding,
                level=mw.level,
                mem_level=mw.mem_level,
                brotli_quality=mw.brotli_quality,
            )
            headers["Content-Encoding"] = self.encoding

            if not more_body:
                data = self.encoder.compress(body) + self.encoder.flush()
                headers["Content-Length"] = str(len(data))
            else:
                data = self.encoder.compress(body)
                if "content-length" in headers:
                    del headers["Content-Length"]

            message["body"] = data
            await self.send(self.initial_message)
            await self.send(message)
            return

        if self.encoder is None:
            await self.send(message)
            return

        data = self.encoder.compress(body)
        if not more_body:
            data += self.encoder.flush()
        message["body"] = data
        await self.send(message)
