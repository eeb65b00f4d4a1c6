#!/usr/bin/env python3
"""
Command-Line Interface for the Compression Benchmark

Usage:
    python -m compression_bench                        # gzip, deflate, br
    python -m compression_bench -c bench.yaml          # Run with custom config
    python -m compression_bench --offline --size 1048576
    python -m compression_bench --codecs gzip br --control
"""

import argparse
import sys

from .models import BenchmarkConfig, CodecSpec
from .orchestrator import BenchmarkOrchestrator, setup_logging


def main(argv=None):
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="HTTP response compression benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m compression_bench                            # Default codecs
  python -m compression_bench -c bench.yaml              # Custom config
  python -m compression_bench --offline --size 1048576   # 1MB synthetic payload
  python -m compression_bench --codecs gzip br --control # Add uncompressed run
  python -m compression_bench --export results.json      # Write JSON report
        """
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to YAML config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--codecs",
        nargs="+",
        default=None,
        help="Codecs to benchmark, in order (gzip, deflate, br)",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=None,
        help="Synthetic payload size in bytes when no source is reachable",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip remote data sources and use synthetic data",
    )
    parser.add_argument(
        "--control",
        action="store_true",
        help="Append an uncompressed (identity) control run",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail a codec whose response encoding differs from the request",
    )
    parser.add_argument(
        "--export",
        default=None,
        help="Write results to a JSON file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: from config or INFO)",
    )

    args = parser.parse_args(argv)

    # Load config
    try:
        config = BenchmarkConfig.from_yaml(args.config) if args.config else BenchmarkConfig()
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)
    except Exception as e:
        print(f"Error loading config: {e}")
        sys.exit(1)

    try:
        if args.codecs:
            config.codecs = [CodecSpec.parse(c) for c in args.codecs]
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.control and CodecSpec.IDENTITY not in config.codecs:
        config.codecs.append(CodecSpec.IDENTITY)
    if args.size is not None:
        config.payload.fallback_size = args.size
    if args.offline:
        config.payload.sources = []
    if args.strict:
        config.strict_negotiation = True
    if args.export:
        config.export_path = args.export
    if args.log_level:
        config.log_level = args.log_level

    try:
        setup_logging(config.log_level, config.log_file)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    print("HTTP COMPRESSION BENCHMARK")
    print("=" * 50)
    print(f"Codecs:          {', '.join(c.token for c in config.codecs)}")
    print(f"Data sources:    {len(config.payload.sources)}")
    print(f"Fallback size:   {config.payload.fallback_size} bytes")
    print(f"Port range:      {config.server.port_min}-{config.server.port_max}")
    print("=" * 50)

    orchestrator = BenchmarkOrchestrator(config)
    results = orchestrator.run()

    sys.exit(0 if results else 1)


if __name__ == "__main__":
    main()
