"""Socket establishment for the OKEx feed.

The feed compresses its payloads itself (raw deflate inside binary frames)
and keeps the link alive with "ping"/"pong" text frames, so the socket is
opened with protocol pings off and no frame size cap.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import InvalidHandshake, InvalidURI, WebSocketException

from .errors import OkexConnectionError, OkexHandshakeError, OkexTimeout

_LOGGER = logging.getLogger(__name__)

CLOSE_TIMEOUT = 5.0
FEED_SCHEMES = frozenset({"ws", "wss"})


async def connect_websocket(
    url: str,
    *,
    ping_interval: float | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open a socket to the feed endpoint.

    Args:
        url: Endpoint URL, e.g. ``wss://real.okex.com:8443/ws/v3``
        ping_interval: Protocol ping period; None leaves keepalive to the
            application "ping" frames
        timeout: Seconds allowed for TCP, TLS and the upgrade together

    Raises:
        OkexHandshakeError: Unsupported URL or rejected upgrade
        OkexTimeout: The endpoint did not answer within ``timeout``
        OkexConnectionError: Network failure
    """
    scheme = urlsplit(url).scheme
    if scheme not in FEED_SCHEMES:
        raise OkexHandshakeError(f"Unsupported feed URL scheme {scheme!r}: {url}")

    _LOGGER.debug("[%s] Opening socket (timeout=%.1fs)", url, timeout)
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=CLOSE_TIMEOUT,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise OkexTimeout(f"Timed out after {timeout:.1f}s connecting to {url}") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise OkexHandshakeError(f"Feed rejected the upgrade at {url}: {err}") from err
    except (OSError, WebSocketException) as err:
        raise OkexConnectionError(f"Could not reach feed at {url}: {err}") from err
