"""Inflate helper for compressed binary frames."""

from __future__ import annotations

import logging
import zlib

_LOGGER = logging.getLogger(__name__)


def decompress(data: bytes) -> str:
    """Inflate a raw deflate stream (no zlib/gzip header) into UTF-8 text.

    Returns an empty string when the stream is corrupt, truncated or not
    valid UTF-8. Failures are logged, never raised.
    """
    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        raw = inflater.decompress(data) + inflater.flush()
        if not inflater.eof:
            raise zlib.error("incomplete deflate stream")
        return raw.decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as err:
        _LOGGER.warning("Failed to decompress frame (%d bytes): %s", len(data), err)
        return ""
