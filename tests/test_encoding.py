import gzip
import zlib

import brotli
import pytest

from compression_bench.encoding import create_encoder, parse_accept_encoding, select_encoding


TEXT = b"wherefore art thou Romeo " * 200


def test_parse_accept_encoding_with_qvalues():
    accepted = parse_accept_encoding("gzip;q=0.5, br, Deflate ; q=0")
    assert accepted == {"gzip": 0.5, "br": 1.0, "deflate": 0.0}


def test_parse_accept_encoding_ignores_malformed_items():
    accepted = parse_accept_encoding("gzip;q=abc, , br;q=2, deflate")
    assert accepted == {"deflate": 1.0}


@pytest.mark.parametrize("header", [None, "", "  "])
def test_missing_header_selects_nothing(header):
    assert select_encoding(header, ["gzip"]) is None


def test_select_only_accepted_coding():
    assert select_encoding("gzip", ["gzip"]) == "gzip"
    assert select_encoding("deflate", ["gzip"]) is None
    assert select_encoding("br", ["br", "gzip"]) == "br"


def test_select_respects_zero_quality():
    assert select_encoding("gzip;q=0", ["gzip"]) is None
    assert select_encoding("*, gzip;q=0", ["gzip", "deflate"]) == "deflate"


def test_select_wildcard_and_preference():
    assert select_encoding("*", ["br", "gzip"]) == "br"
    assert select_encoding("gzip;q=0.8, br;q=0.9", ["gzip", "br"]) == "br"
    # Equal q-values keep the server order
    assert select_encoding("gzip, deflate", ["deflate", "gzip"]) == "deflate"


def test_identity_is_never_selected():
    assert select_encoding("identity", ["identity"]) is None


@pytest.mark.parametrize(
    "encoding,decompress",
    [
        ("gzip", gzip.decompress),
        ("deflate", zlib.decompress),
        ("br", brotli.decompress),
    ],
)
def test_encoders_produce_standard_streams(encoding, decompress):
    encoder = create_encoder(encoding)
    data = encoder.compress(TEXT[:1000]) + encoder.compress(TEXT[1000:]) + encoder.flush()
    assert decompress(data) == TEXT
    assert len(data) < len(TEXT), "Expected repetitive text to shrink"


def test_gzip_output_has_gzip_magic():
    encoder = create_encoder("gzip")
    data = encoder.compress(TEXT) + encoder.flush()
    assert data[:2] == b"\x1f\x8b"


def test_unknown_encoding_rejected():
    with pytest.raises(ValueError):
        create_encoder("zstd")
