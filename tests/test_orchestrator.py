import json

import pytest

from compression_bench.errors import ServerStartError
from compression_bench.models import BenchmarkConfig, CodecSpec
from compression_bench.orchestrator import BenchmarkOrchestrator
from compression_bench.payload import TestDataProvider
from compression_bench.runner import CompressionBenchmarkRunner
from compression_bench.server import EphemeralServer


ONE_MB = 1024 * 1024


class BlockedRunner(CompressionBenchmarkRunner):
    """Runner whose servers for `blocked` codecs can only use an occupied port."""

    def __init__(self, config, busy_port, blocked):
        super().__init__(config)
        self.busy_port = busy_port
        self.blocked = blocked

    def _create_server(self, app, codec):
        if codec in self.blocked:
            return EphemeralServer(
                app,
                port_min=self.busy_port,
                port_max=self.busy_port,
                max_bind_attempts=3,
            )
        return super()._create_server(app, codec)


class CountingProvider(TestDataProvider):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def get_payload(self):
        self.calls += 1
        return super().get_payload()


def test_end_to_end_three_codecs(offline_config):
    offline_config.payload.fallback_size = ONE_MB
    orchestrator = BenchmarkOrchestrator(offline_config)

    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE, CodecSpec.BROTLI])

    assert len(orchestrator.payload) == ONE_MB
    assert [r.algorithm for r in results] == ["gzip", "deflate", "br"]
    for result in results:
        assert result.original_size == ONE_MB
        assert result.compressed_size < ONE_MB
        assert result.elapsed_ms >= 0
    assert orchestrator.failures == []


def test_payload_requested_once(offline_config):
    provider = CountingProvider(sources=[], fallback_size=64 * 1024, seed=1)
    orchestrator = BenchmarkOrchestrator(offline_config, provider=provider)

    orchestrator.compare(["gzip", "deflate", "br"])

    assert provider.calls == 1


def test_defaults_to_configured_codecs(offline_config):
    offline_config.codecs = [CodecSpec.BROTLI, CodecSpec.GZIP]
    results = BenchmarkOrchestrator(offline_config).compare()

    assert [r.algorithm for r in results] == ["br", "gzip"]


def test_failed_codec_does_not_abort_batch(offline_config, busy_port):
    runner = BlockedRunner(offline_config, busy_port, blocked={CodecSpec.GZIP})
    orchestrator = BenchmarkOrchestrator(offline_config, runner=runner)

    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE, CodecSpec.BROTLI])

    assert [r.algorithm for r in results] == ["deflate", "br"]
    assert len(orchestrator.failures) == 1
    assert orchestrator.failures[0].codec is CodecSpec.GZIP
    assert isinstance(orchestrator.failures[0].error, ServerStartError)


def test_all_codecs_failing_returns_empty(offline_config, busy_port):
    blocked = {CodecSpec.GZIP, CodecSpec.DEFLATE}
    runner = BlockedRunner(offline_config, busy_port, blocked=blocked)
    orchestrator = BenchmarkOrchestrator(offline_config, runner=runner)

    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE])

    assert results == []
    assert [f.codec for f in orchestrator.failures] == [CodecSpec.GZIP, CodecSpec.DEFLATE]


def test_unreachable_sources_fall_back(offline_config):
    # Nothing listens on port 1, connections are refused immediately
    offline_config.payload.sources = ["http://127.0.0.1:1/a.txt", "http://127.0.0.1:1/b.txt"]
    offline_config.payload.fetch_timeout = 2.0
    orchestrator = BenchmarkOrchestrator(offline_config)

    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE, CodecSpec.BROTLI])

    assert len(orchestrator.payload) == offline_config.payload.fallback_size
    assert len(results) == 3


def test_run_prints_and_exports(offline_config, tmp_path, capsys):
    export = tmp_path / "out" / "results.json"
    offline_config.export_path = str(export)
    orchestrator = BenchmarkOrchestrator(offline_config)

    results = orchestrator.run([CodecSpec.GZIP, CodecSpec.IDENTITY])

    out = capsys.readouterr().out
    assert "FINAL RESULTS" in out
    assert "gzip" in out and "none" in out

    data = json.loads(export.read_text())
    assert data["payload_size"] == offline_config.payload.fallback_size
    assert [row["algorithm"] for row in data["rows"]] == ["gzip", "none"]
    assert data["results"][0]["compressed_size"] == results[0].compressed_size
    assert data["failures"] == []


def test_unknown_codec_rejected(offline_config):
    with pytest.raises(ValueError):
        BenchmarkOrchestrator(offline_config).compare(["lzma"])


def test_default_config_builds_components():
    orchestrator = BenchmarkOrchestrator(BenchmarkConfig())
    assert isinstance(orchestrator.runner, CompressionBenchmarkRunner)
    assert orchestrator.provider.sources == BenchmarkConfig().payload.sources


def test_server_config_error_is_a_codec_failure(offline_config):
    offline_config.server.log_level = "verbose"
    orchestrator = BenchmarkOrchestrator(offline_config)

    results = orchestrator.compare([CodecSpec.GZIP, CodecSpec.DEFLATE])

    assert results == []
    assert [f.codec for f in orchestrator.failures] == [CodecSpec.GZIP, CodecSpec.DEFLATE]
    assert all(isinstance(f.error, ServerStartError) for f in orchestrator.failures)
