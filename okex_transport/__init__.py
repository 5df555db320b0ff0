"""Resilient websocket streaming client for the OKEx market-data feed."""

__version__ = "0.1.0"

import logging

from .client import OkexWsClient
from .compression import decompress
from .errors import (
    OkexClientError,
    OkexConnectionError,
    OkexHandshakeError,
    OkexTimeout,
)
from .heartbeat import HeartbeatSender
from .liveness import (
    LivenessSupervisor,
    LivenessTracker,
    RecoveryAction,
    classify_staleness,
)
from .protocol import (
    DEFAULT_HOST,
    HEARTBEAT_REPLY_TOKEN,
    HEARTBEAT_TOKEN,
    build_request,
    make_sign,
)
from .settings import OkexWsSettings, SettingsError, load_settings
from .transport import (
    ConnectionState,
    OkexTransport,
    OkexWsFrame,
    WebsocketTransport,
)
from .ws import connect_websocket

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_HOST",
    "HEARTBEAT_REPLY_TOKEN",
    "HEARTBEAT_TOKEN",
    "ConnectionState",
    "HeartbeatSender",
    "LivenessSupervisor",
    "LivenessTracker",
    "OkexClientError",
    "OkexConnectionError",
    "OkexHandshakeError",
    "OkexTimeout",
    "OkexTransport",
    "OkexWsClient",
    "OkexWsFrame",
    "OkexWsSettings",
    "RecoveryAction",
    "SettingsError",
    "WebsocketTransport",
    "__version__",
    "build_request",
    "classify_staleness",
    "connect_websocket",
    "decompress",
    "load_settings",
    "make_sign",
]
