import gzip

import pytest
import requests

from compression_bench.errors import ServerStartError
from compression_bench.models import CodecSpec
from compression_bench.server import EphemeralServer, create_benchmark_app


def get_raw(url, accept_encoding):
    with requests.get(
        url,
        headers={"Accept-Encoding": accept_encoding, "Accept": "text/plain"},
        stream=True,
    ) as response:
        response.raw.decode_content = False
        return response, response.raw.read(decode_content=False)


def test_route_headers_and_compression(payload):
    app = create_benchmark_app(payload, CodecSpec.GZIP)

    with EphemeralServer(app) as server:
        response, body = get_raw(server.url("/test"), "gzip")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-cache"
    assert response.headers["Content-Type"].startswith("text/plain")
    assert response.headers["Content-Encoding"] == "gzip"
    assert gzip.decompress(body) == payload


def test_control_server_never_compresses(payload):
    app = create_benchmark_app(payload, CodecSpec.IDENTITY)

    with EphemeralServer(app) as server:
        response, body = get_raw(server.url("/test"), "gzip, deflate, br")

    assert "Content-Encoding" not in response.headers
    assert "Vary" not in response.headers
    assert body == payload


def test_port_released_after_exit(payload, port_is_free):
    app = create_benchmark_app(payload, CodecSpec.DEFLATE)

    with EphemeralServer(app) as server:
        port = server.port
        assert server.is_running, "Expected server thread to be running"
        assert not port_is_free(port), "Expected port to be held while serving"
        get_raw(server.url("/test"), "deflate")

    assert not server.is_running
    assert port_is_free(port), "Expected port to be released after exit"


def test_port_released_when_body_raises(payload, port_is_free):
    app = create_benchmark_app(payload, CodecSpec.GZIP)

    with pytest.raises(RuntimeError):
        with EphemeralServer(app) as server:
            port = server.port
            raise RuntimeError("boom")

    assert port_is_free(port)


def test_port_in_configured_range(payload):
    app = create_benchmark_app(payload, CodecSpec.GZIP)

    with EphemeralServer(app, port_min=3000, port_max=3999) as server:
        assert 3000 <= server.port <= 3999


def test_bind_retries_on_collision(payload, busy_port, free_port):
    candidates = iter([busy_port, busy_port, free_port])
    app = create_benchmark_app(payload, CodecSpec.GZIP)

    with EphemeralServer(app, port_picker=lambda: next(candidates)) as server:
        assert server.port == free_port


def test_bind_gives_up_after_max_attempts(payload, busy_port):
    app = create_benchmark_app(payload, CodecSpec.GZIP)
    server = EphemeralServer(app, port_min=busy_port, port_max=busy_port, max_bind_attempts=3)

    with pytest.raises(ServerStartError) as excinfo:
        server.start()

    assert excinfo.value.attempts == 3
    assert not server.is_running


def test_invalid_port_range():
    with pytest.raises(ValueError):
        EphemeralServer(None, port_min=4000, port_max=3000)


def test_url_requires_start(payload):
    server = EphemeralServer(create_benchmark_app(payload, CodecSpec.GZIP))
    with pytest.raises(RuntimeError):
        server.url("/test")


def test_bad_uvicorn_config_releases_port(payload, free_port, port_is_free):
    app = create_benchmark_app(payload, CodecSpec.GZIP)
    server = EphemeralServer(app, log_level="verbose", port_picker=lambda: free_port)

    with pytest.raises(ServerStartError) as excinfo:
        server.start()

    assert isinstance(excinfo.value.__cause__, KeyError)
    assert server.port == free_port
    assert not server.is_running
    assert port_is_free(free_port), "Expected bound socket to be closed after a failed start"
