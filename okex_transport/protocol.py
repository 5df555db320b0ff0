"""Protocol helpers for OKEx v3 websocket frames."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any

DEFAULT_HOST = "wss://real.okex.com:8443/ws/v3"

# Application-level keepalive; the feed answers each "ping" with "pong".
HEARTBEAT_TOKEN = "ping"
HEARTBEAT_REPLY_TOKEN = "pong"

LOGIN_VERIFY_PATH = "/users/self/verify"


def _timestamp() -> str:
    return f"{time.time():.3f}"


def sign_message(secret: str, timestamp: str) -> str:
    """Sign the login pre-hash string with HMAC-SHA256, base64 encoded."""
    prehash = f"{timestamp}GET{LOGIN_VERIFY_PATH}"
    digest = hmac.new(
        secret.encode("utf-8"),
        prehash.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def make_sign(
    api_key: str,
    secret: str,
    passphrase: str,
    *,
    timestamp: str | None = None,
) -> str:
    """Build the login frame for the private channels.

    The frame carries the key, passphrase, timestamp (epoch seconds) and the
    signature of ``timestamp + "GET" + "/users/self/verify"``.
    """
    ts = timestamp or _timestamp()
    return build_request(
        "login",
        [api_key, passphrase, ts, sign_message(secret, ts)],
    )


def build_request(op: str, args: list[Any]) -> str:
    """Build an ``{"op": ..., "args": [...]}`` request frame."""
    return json.dumps({"op": op, "args": args}, separators=(",", ":"))
