#!/usr/bin/env python3
"""
Test Data Provider

Supplies the payload every codec run compresses. Remote text sources are
tried in priority order, each with a bounded timeout; when all of them fail a
synthetic payload is generated locally, so get_payload() always succeeds.
"""

import logging
import random
import time
from typing import List, Optional

import requests
import urllib3

from .errors import DataFetchError
from .formatting import format_bytes
from .models import (
    DEFAULT_DATA_SOURCES,
    DEFAULT_FALLBACK_SIZE,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_USER_AGENT,
    PayloadConfig,
)


# Vocabulary for synthetic text; small on purpose so the output compresses well
SYNTHETIC_WORDS = [
    "the", "be", "to", "of", "and", "a", "in", "that", "have", "I",
    "Shakespeare", "Hamlet", "Macbeth", "Romeo", "Juliet", "Othello",
    "wherefore", "thou", "thy", "thee", "hast", "doth", "forsooth",
]

# Probability of a line break after each word
LINE_BREAK_PROBABILITY = 0.1

# Upper bound on a single read while fetching a source
FETCH_CHUNK_SIZE = 64 * 1024


def generate_test_data(size: int = DEFAULT_FALLBACK_SIZE, seed: Optional[int] = None) -> bytes:
    """
    Generate compressible plain text of exactly `size` bytes.

    Args:
        size: Target length in bytes.
        seed: Seed for reproducible output.

    Returns:
        ASCII text made of random words with occasional line breaks.
    """
    if size <= 0:
        return b""

    rng = random.Random(seed)
    parts = []
    length = 0
    while length < size:
        word = rng.choice(SYNTHETIC_WORDS) + " "
        if rng.random() < LINE_BREAK_PROBABILITY:
            word += "\n"
        parts.append(word)
        length += len(word)

    return "".join(parts).encode("ascii")[:size]


class TestDataProvider:
    """
    Fetches the benchmark payload with a prioritized-sources-with-fallback policy.
    """

    # Not a pytest test class
    __test__ = False

    def __init__(
        self,
        sources: List[str] = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        fallback_size: int = DEFAULT_FALLBACK_SIZE,
        user_agent: str = DEFAULT_USER_AGENT,
        seed: Optional[int] = None,
        logger: logging.Logger = None,
    ):
        """
        Initialize the provider.

        Args:
            sources: URLs to try in order (defaults to Project Gutenberg).
            fetch_timeout: Timeout in seconds for each fetch attempt.
            fallback_size: Size of the synthetic payload.
            user_agent: User-Agent header sent to sources.
            seed: Seed for the synthetic payload.
            logger: Logger instance (creates one if not provided).
        """
        self.sources = list(DEFAULT_DATA_SOURCES if sources is None else sources)
        self.fetch_timeout = fetch_timeout
        self.fallback_size = fallback_size
        self.user_agent = user_agent
        self.seed = seed
        self.logger = logger or logging.getLogger("TestDataProvider")

    @classmethod
    def from_config(cls, config: PayloadConfig, logger: logging.Logger = None) -> "TestDataProvider":
        return cls(
            sources=config.sources,
            fetch_timeout=config.fetch_timeout,
            fallback_size=config.fallback_size,
            user_agent=config.user_agent,
            seed=config.seed,
            logger=logger,
        )

    def fetch(self, url: str) -> bytes:
        """
        Fetch one source within `fetch_timeout` seconds for the whole attempt.

        The requests timeout only bounds each connect/read wait, so the body
        is read incrementally against an overall deadline.

        Raises:
            DataFetchError: On transport errors, error statuses, empty bodies
                or when the attempt runs past its deadline.
        """
        deadline = time.monotonic() + self.fetch_timeout
        chunks = []
        try:
            with requests.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.fetch_timeout,
                stream=True,
            ) as response:
                response.raise_for_status()
                while True:
                    if time.monotonic() > deadline:
                        raise DataFetchError(url, f"timed out after {self.fetch_timeout}s")
                    # read1 returns after a single socket read instead of
                    # waiting for the full chunk size
                    chunk = response.raw.read1(FETCH_CHUNK_SIZE, decode_content=True)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except (requests.RequestException, urllib3.exceptions.HTTPError) as e:
            raise DataFetchError(url, str(e)) from e

        data = b"".join(chunks)
        if not data:
            raise DataFetchError(url, "empty response")
        return data

    def get_payload(self) -> bytes:
        """
        Return the benchmark payload. Never raises.
        """
        for url in self.sources:
            try:
                data = self.fetch(url)
            except DataFetchError as e:
                self.logger.warning(f"{e}, trying next source...")
                continue

            self.logger.info(f"Fetched {format_bytes(len(data))} of test data from {url}")
            return data

        if self.sources:
            self.logger.error("Error fetching test data: all data sources failed")

        self.logger.info(f"Generating {format_bytes(self.fallback_size)} of synthetic test data")
        return generate_test_data(self.fallback_size, self.seed)
