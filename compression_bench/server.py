#!/usr/bin/env python3
"""
Ephemeral Benchmark Server

Builds a single-route FastAPI application serving the benchmark payload and
runs it under uvicorn on a randomly chosen local port for the lifetime of a
single benchmark run.

Lifecycle:
    with EphemeralServer(create_benchmark_app(payload, CodecSpec.GZIP)) as server:
        url = server.url("/test")
        ...
    # listener closed, port released, server thread joined

Every run builds its own app and server. Nothing is shared between runs.
"""

import logging
import random
import socket
import threading
import time
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import Response

from .errors import ServerStartError
from .middleware import CompressionMiddleware
from .models import (
    CodecSpec,
    CompressionConfig,
    DEFAULT_MAX_BIND_ATTEMPTS,
    DEFAULT_PORT_MAX,
    DEFAULT_PORT_MIN,
    DEFAULT_ROUTE,
    DEFAULT_STARTUP_TIMEOUT,
)


# =============================================================================
# Constants
# =============================================================================

# Poll interval while waiting for startup (seconds)
STARTUP_POLL_INTERVAL = 0.01

# Upper bound on waiting for the server thread to exit (seconds)
SHUTDOWN_TIMEOUT = 10.0

LISTEN_BACKLOG = 16


# =============================================================================
# App Factory
# =============================================================================

def create_benchmark_app(
    payload: bytes,
    codec: CodecSpec,
    compression: Optional[CompressionConfig] = None,
    route: str = DEFAULT_ROUTE,
) -> FastAPI:
    """
    Create a FastAPI app with one GET route returning the payload.

    The route disables caching and declares plain text. Compression is
    forced on for every size and content type, limited to `codec`.

    Args:
        payload: Bytes returned on every request.
        codec: The only coding the server may apply.
        compression: Encoder parameters.
        route: Path of the route.

    Returns:
        Configured FastAPI application.
    """
    compression = compression or CompressionConfig()

    app = FastAPI(
        title="Compression Benchmark Server",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        CompressionMiddleware,
        encodings=[] if codec.is_control else [codec.token],
        level=compression.level,
        mem_level=compression.mem_level,
        brotli_quality=compression.brotli_quality,
        threshold=0,
    )

    @app.get(route)
    async def serve_payload():
        return Response(
            content=payload,
            media_type="text/plain",
            headers={
                "Cache-Control": "no-cache",
                "X-No-Compression": "false",
            },
        )

    return app


# =============================================================================
# Ephemeral Server
# =============================================================================

class EphemeralServer:
    """
    A uvicorn server bound to a random local port, run in a background thread.

    Use as a context manager: entering binds and starts the server and blocks
    until it accepts connections; exiting stops it and releases the port on
    every path, including errors.
    """

    def __init__(
        self,
        app,
        host: str = "127.0.0.1",
        port_min: int = DEFAULT_PORT_MIN,
        port_max: int = DEFAULT_PORT_MAX,
        max_bind_attempts: int = DEFAULT_MAX_BIND_ATTEMPTS,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        log_level: str = "warning",
        port_picker: Callable[[], int] = None,
        logger: logging.Logger = None,
    ):
        """
        Initialize the server (nothing is bound until start()).

        Args:
            app: ASGI application to serve.
            host: Interface to bind.
            port_min: Lowest candidate port (inclusive).
            port_max: Highest candidate port (inclusive).
            max_bind_attempts: Ports to try before giving up.
            startup_timeout: Seconds to wait for uvicorn to start serving.
            log_level: uvicorn log level.
            port_picker: Returns a candidate port (defaults to random in range).
            logger: Logger instance (creates one if not provided).
        """
        if port_min > port_max:
            raise ValueError(f"Invalid port range: {port_min}-{port_max}")

        self.app = app
        self.host = host
        self.port_min = port_min
        self.port_max = port_max
        self.max_bind_attempts = max(1, max_bind_attempts)
        self.startup_timeout = startup_timeout
        self.log_level = log_level
        self.port_picker = port_picker or (lambda: random.randint(self.port_min, self.port_max))
        self.logger = logger or logging.getLogger("EphemeralServer")

        self.port: Optional[int] = None
        self._socket: Optional[socket.socket] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "EphemeralServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def url(self, path: str = "/") -> str:
        if self.port is None:
            raise RuntimeError("Server is not started")
        return f"http://{self.host}:{self.port}{path}"

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _bind(self) -> socket.socket:
        """Bind a listening socket, reselecting the port on collisions."""
        last_error = None

        for attempt in range(1, self.max_bind_attempts + 1):
            port = self.port_picker()
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind((self.host, port))
                sock.listen(LISTEN_BACKLOG)
            except OSError as e:
                sock.close()
                last_error = e
                self.logger.debug(f"Bind to {self.host}:{port} failed (attempt {attempt}): {e}")
                continue

            self.port = sock.getsockname()[1]
            return sock

        raise ServerStartError(
            f"Could not bind {self.host} in ports {self.port_min}-{self.port_max}: {last_error}",
            attempts=self.max_bind_attempts,
        )

    def start(self):
        """Bind, start serving, and wait until connections are accepted."""
        if self._thread is not None:
            raise RuntimeError("Server already started")

        self._socket = self._bind()

        # From here on the socket is held, so every failure must release it
        try:
            self._launch()
        except ServerStartError:
            self.stop()
            raise
        except Exception as e:
            self.stop()
            raise ServerStartError(f"Server on port {self.port} failed to start: {e!r}") from e
        except BaseException:
            self.stop()
            raise

        self.logger.debug(f"Listening on {self.host}:{self.port}")

    def _launch(self):
        """Run uvicorn on the bound socket and wait for it to serve."""
        config = uvicorn.Config(
            self.app,
            log_level=self.log_level,
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [self._socket]},
            name=f"ephemeral-server-{self.port}",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                raise ServerStartError(f"Server on port {self.port} exited during startup")
            if time.monotonic() > deadline:
                raise ServerStartError(
                    f"Server on port {self.port} did not start within {self.startup_timeout}s"
                )
            time.sleep(STARTUP_POLL_INTERVAL)

    def stop(self):
        """Stop serving and release the port. Safe to call more than once."""
        if self._server is not None:
            self._server.should_exit = True

        if self._thread is not None:
            self._thread.join(SHUTDOWN_TIMEOUT)
            if self._thread.is_alive():
                self.logger.warning(f"Server thread on port {self.port} did not exit")
                # Skip lingering keep-alive connections
                self._server.force_exit = True
                self._thread.join(SHUTDOWN_TIMEOUT)

        if self._socket is not None:
            self._socket.close()

        self._socket = None
        self._server = None
        self._thread = None
