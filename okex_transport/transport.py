"""Socket transport for the OKEx feed.

``OkexTransport`` is the contract the client consumes: connect, send text,
close, a ready-state query, and three handler slots (open, message, error).
``WebsocketTransport`` implements it over the ``websockets`` asyncio client.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from .errors import OkexConnectionError
from .ws import connect_websocket

_LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000


class ConnectionState(Enum):
    """Lifecycle state of a transport connection."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class OkexWsFrame:
    """Inbound websocket frame.

    Binary frames carry raw bytes (deflate compressed on this feed), text
    frames carry str.
    """

    is_binary: bool
    data: str | bytes


OpenHandler = Callable[[], Awaitable[None] | None]
MessageHandler = Callable[[OkexWsFrame], Awaitable[None] | None]
ErrorHandler = Callable[[str, BaseException | None], Awaitable[None] | None]


class OkexTransport(ABC):
    """Abstract transport consumed by ``OkexWsClient``.

    Subclasses implement the socket primitives; handler slots and dispatch
    live here. A slot holds at most one handler, and dispatch reads the slot
    at delivery time, so clearing a slot stops delivery immediately.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._open_handler: OpenHandler | None = None
        self._message_handler: MessageHandler | None = None
        self._error_handler: ErrorHandler | None = None

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current ready state."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Raises ``OkexClientError`` on failure."""

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send a text frame. Raises ``OkexConnectionError`` when not open."""

    @abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection. No-op when not connected."""

    def set_open_handler(self, handler: OpenHandler | None) -> None:
        self._open_handler = handler

    def set_message_handler(self, handler: MessageHandler | None) -> None:
        self._message_handler = handler

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        self._error_handler = handler

    def detach_handlers(self) -> None:
        """Clear all handler slots."""
        self._open_handler = None
        self._message_handler = None
        self._error_handler = None

    async def _dispatch_open(self) -> None:
        handler = self._open_handler
        if handler is not None:
            await self._invoke("open", handler)

    async def _dispatch_message(self, frame: OkexWsFrame) -> None:
        handler = self._message_handler
        if handler is not None:
            await self._invoke("message", handler, frame)

    async def _dispatch_error(self, message: str, err: BaseException | None) -> None:
        handler = self._error_handler
        if handler is not None:
            await self._invoke("error", handler, message, err)
        else:
            _LOGGER.debug("[%s] Unhandled transport error: %s", self.url, message)

    async def _invoke(self, kind: str, handler: Callable[..., object], *args: object) -> None:
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _LOGGER.exception("[%s] %s handler raised", self.url, kind.capitalize())


class WebsocketTransport(OkexTransport):
    """``OkexTransport`` over a ``websockets`` client connection.

    Usage:
        transport = WebsocketTransport("wss://real.okex.com:8443/ws/v3")
        transport.set_message_handler(on_frame)
        await transport.connect()
        await transport.send("ping")
        await transport.close()
    """

    def __init__(
        self,
        url: str,
        *,
        ping_interval: float | None = None,
        timeout: float = 15.0,
    ) -> None:
        super().__init__(url)
        self._ping_interval = ping_interval
        self._timeout = timeout
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._state = ConnectionState.UNINITIALIZED

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        """Open a new socket, replacing any previous one on this instance."""
        if self._ws is not None:
            await self.close()

        self._state = ConnectionState.CONNECTING
        try:
            ws = await connect_websocket(
                self.url,
                ping_interval=self._ping_interval,
                timeout=self._timeout,
            )
        except BaseException:
            # Includes cancellation; never leave the state at CONNECTING.
            self._state = ConnectionState.CLOSED
            raise

        self._ws = ws
        self._state = ConnectionState.OPEN
        _LOGGER.debug("[%s] WebSocket opened", self.url)
        await self._dispatch_open()
        self._reader = asyncio.create_task(self._read_loop(ws))

    async def send(self, text: str) -> None:
        if self._ws is None or self._state is not ConnectionState.OPEN:
            raise OkexConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as err:
            raise OkexConnectionError("WebSocket send failed") from err

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        ws = self._ws
        if ws is None:
            return

        self._state = ConnectionState.CLOSING
        self._ws = None
        reader = self._reader
        self._reader = None
        try:
            await ws.close(code, reason)
        finally:
            if reader is not None and reader is not asyncio.current_task():
                reader.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await reader
            self._state = ConnectionState.CLOSED
            _LOGGER.debug("[%s] WebSocket closed (code=%d)", self.url, code)

    async def _read_loop(self, ws: ClientConnection) -> None:
        try:
            async for msg in ws:
                await self._dispatch_message(
                    OkexWsFrame(is_binary=isinstance(msg, bytes), data=msg)
                )
        except ConnectionClosedOK:
            _LOGGER.debug("[%s] WebSocket closed by peer", self.url)
        except ConnectionClosed as err:
            await self._dispatch_error("WebSocket connection lost", err)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            await self._dispatch_error("WebSocket receive failed", err)
        else:
            _LOGGER.debug("[%s] WebSocket closed by peer", self.url)
        finally:
            if self._ws is ws:
                self._ws = None
                self._reader = None
                self._state = ConnectionState.CLOSED
