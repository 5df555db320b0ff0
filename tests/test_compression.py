"""Tests for raw deflate frame decompression."""

from __future__ import annotations

import logging
import zlib

from okex_transport.compression import decompress

from .conftest import deflate


def test_decompress_text():
    """Test a raw deflate stream inflates to its text."""
    assert decompress(deflate("price:100")) == "price:100"


def test_decompress_json_payload():
    """Test a typical table update survives unchanged."""
    payload = '{"table":"spot/ticker","data":[{"instrument_id":"BTC-USDT","last":"9999.9"}]}'
    assert decompress(deflate(payload)) == payload


def test_decompress_unicode():
    """Test multi-byte UTF-8 content."""
    assert decompress(deflate("行情 ✓")) == "行情 ✓"


def test_corrupt_stream_returns_empty(caplog):
    """Test garbage input yields the empty sentinel and is logged."""
    with caplog.at_level(logging.WARNING):
        assert decompress(b"\xff\xfe\xfd\xfc") == ""
    assert "Failed to decompress frame" in caplog.text


def test_truncated_stream_returns_empty():
    """Test a stream cut short yields the empty sentinel."""
    data = deflate("a reasonably long payload " * 20)
    assert decompress(data[: len(data) // 2]) == ""


def test_empty_input_returns_empty():
    """Test empty input is treated as a failure."""
    assert decompress(b"") == ""


def test_invalid_utf8_returns_empty():
    """Test bytes that inflate to invalid UTF-8 yield the empty sentinel."""
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    data = compressor.compress(b"\xff\xfe\x80") + compressor.flush()
    assert decompress(data) == ""
