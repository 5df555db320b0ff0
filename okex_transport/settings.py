"""Client settings and YAML loading.

Settings are plain data. A YAML file may hold the keys at the top level or
nested under an ``okex:`` key:

    okex:
      host: wss://real.okex.com:8443/ws/v3
      reconnect_after: 60
      reinitialize_after: 120
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .heartbeat import HEARTBEAT_INTERVAL
from .liveness import CHECK_INTERVAL, REINITIALIZE_AFTER, RECONNECT_AFTER
from .protocol import DEFAULT_HOST, HEARTBEAT_REPLY_TOKEN, HEARTBEAT_TOKEN


_TEXT_FIELDS = ("host", "heartbeat_token", "heartbeat_reply_token")
_NUMBER_FIELDS = (
    "check_interval",
    "reconnect_after",
    "reinitialize_after",
    "heartbeat_interval",
    "connect_timeout",
)


class SettingsError(ValueError):
    """Invalid or unreadable client settings."""


@dataclass(frozen=True)
class OkexWsSettings:
    """Connection and liveness settings.

    Attributes:
        host: Websocket endpoint URL.
        check_interval: Seconds between liveness checks.
        reconnect_after: Staleness (seconds) that triggers a soft reconnect.
        reinitialize_after: Staleness (seconds) that triggers a full rebuild.
        heartbeat_interval: Seconds between keepalive sends.
        heartbeat_token: Outbound keepalive payload.
        heartbeat_reply_token: Inbound keepalive reply, never delivered.
        connect_timeout: Socket establishment timeout (seconds).
    """

    host: str = DEFAULT_HOST
    check_interval: float = CHECK_INTERVAL
    reconnect_after: float = RECONNECT_AFTER
    reinitialize_after: float = REINITIALIZE_AFTER
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    heartbeat_token: str = HEARTBEAT_TOKEN
    heartbeat_reply_token: str = HEARTBEAT_REPLY_TOKEN
    connect_timeout: float = 15.0

    def __post_init__(self) -> None:
        for name in _TEXT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str):
                raise SettingsError(
                    f"{name} must be a string, got {type(value).__name__}"
                )
        for name in _NUMBER_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise SettingsError(
                    f"{name} must be a number, got {type(value).__name__}"
                )
            if value <= 0:
                raise SettingsError(f"{name} must be positive")
        if self.reinitialize_after <= self.reconnect_after:
            raise SettingsError("reinitialize_after must exceed reconnect_after")
        if self.heartbeat_token == self.heartbeat_reply_token:
            raise SettingsError("heartbeat_token and heartbeat_reply_token must differ")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> OkexWsSettings:
        """Build settings from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(unknown)}")
        return cls(**data)


def load_settings(path: str | Path) -> OkexWsSettings:
    """Load settings from a YAML file.

    Raises:
        SettingsError: If the file is missing or its content is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise SettingsError(f"File not found: {path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise SettingsError(f"Expected a mapping in {path}")
    if "okex" in data:
        data = data["okex"] or {}
        if not isinstance(data, dict):
            raise SettingsError(f"Expected a mapping under 'okex' in {path}")
    return OkexWsSettings.from_mapping(data)
