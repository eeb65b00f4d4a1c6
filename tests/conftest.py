import socket

import pytest

from compression_bench.models import BenchmarkConfig
from compression_bench.payload import generate_test_data


def _port_is_free(port: int) -> bool:
    """True if nothing is listening on the port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("127.0.0.1", port))
        sock.listen(1)
        return True
    except OSError:
        return False
    finally:
        sock.close()


@pytest.fixture
def port_is_free():
    return _port_is_free


@pytest.fixture
def free_port() -> int:
    """A port the OS reported unused."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def busy_port():
    """A port held by a listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def payload() -> bytes:
    return generate_test_data(256 * 1024, seed=42)


@pytest.fixture
def offline_config() -> BenchmarkConfig:
    config = BenchmarkConfig()
    config.payload.sources = []
    config.payload.fallback_size = 256 * 1024
    config.payload.seed = 7
    return config
