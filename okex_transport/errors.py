"""Client error types for the OKEx websocket feed."""

from __future__ import annotations


class OkexClientError(Exception):
    """Base error for OKEx websocket client failures."""


class OkexTimeout(OkexClientError):
    """Timeout while establishing the websocket connection."""


class OkexConnectionError(OkexClientError):
    """Network connection to the feed failed or is not open."""


class OkexHandshakeError(OkexClientError):
    """WebSocket handshake with the feed failed."""
