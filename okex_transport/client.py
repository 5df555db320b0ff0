"""Resilient streaming client for the OKEx websocket feed.

This module owns the connection lifecycle:
- connect / disconnect / login / send over a replaceable transport
- inflating compressed frames and dropping keepalive replies
- fan-out of messages and open notifications to subscribers
- timer-driven recovery (soft reconnect, then full re-initialize)

Failures are logged, never raised to the caller; the only recovery actions
are the ones the liveness supervisor takes.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable

from .compression import decompress
from .heartbeat import HeartbeatSender
from .liveness import LivenessSupervisor, LivenessTracker
from .protocol import make_sign
from .settings import OkexWsSettings
from .transport import (
    NORMAL_CLOSURE,
    ConnectionState,
    OkexTransport,
    OkexWsFrame,
    WebsocketTransport,
)

_LOGGER = logging.getLogger(__name__)

MessageCallback = Callable[[str], Awaitable[None] | None]
OpenCallback = Callable[[], Awaitable[None] | None]
TransportFactory = Callable[[str], OkexTransport]
Signer = Callable[[str, str, str], str]


class OkexWsClient:
    """Streaming client with liveness supervision.

    Usage:
        client = OkexWsClient()
        client.on_open(lambda: print("open"))
        client.on_message(handle_payload)
        await client.connect()
        await client.login(api_key, secret, passphrase)
        await client.send('{"op":"subscribe","args":["spot/ticker:BTC-USDT"]}')
        await client.close()
    """

    def __init__(
        self,
        host: str | None = None,
        logger: logging.Logger | None = None,
        *,
        settings: OkexWsSettings | None = None,
        transport_factory: TransportFactory | None = None,
        signer: Signer = make_sign,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the client.

        Args:
            host: Endpoint URL (overrides ``settings.host``)
            logger: Log sink; defaults to this module's logger
            settings: Liveness and keepalive settings
            transport_factory: Builds a transport for a URL
            signer: Produces the login frame from credentials
            clock: Monotonic time source in seconds
        """
        self._settings = settings or OkexWsSettings()
        self.host = host or self._settings.host
        self._logger = logger or _LOGGER
        self._transport_factory = transport_factory or self._default_transport
        self._signer = signer

        self._auto_reconnect = False
        self._transport_lock = asyncio.Lock()
        self._lock_owner: asyncio.Task[object] | None = None

        # Subscribers, invoked in registration order
        self._message_callbacks: list[MessageCallback] = []
        self._open_callbacks: list[OpenCallback] = []

        self._tracker = LivenessTracker(clock)
        self._supervisor = LivenessSupervisor(
            self._tracker,
            reconnect=self._reconnect,
            reinitialize=self._reinitialize,
            interval=self._settings.check_interval,
            reconnect_after=self._settings.reconnect_after,
            reinitialize_after=self._settings.reinitialize_after,
            logger=self._logger,
        )
        self._heartbeat = HeartbeatSender(
            self.send,
            token=self._settings.heartbeat_token,
            interval=self._settings.heartbeat_interval,
            logger=self._logger,
        )

        self._transport = self._build_transport()

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self, auto_reconnect: bool = True) -> None:
        """Connect to the feed.

        Connection failures are logged, not raised. With ``auto_reconnect``
        the liveness supervisor keeps retrying in the background.
        """
        transport = self._transport
        transport.set_message_handler(self._handle_message)

        self._logger.info("[%s] Connecting", self.host)
        try:
            await transport.connect()
        except Exception as err:
            self._logger.error("[%s] Connection failed: %s", self.host, err)

        self._auto_reconnect = auto_reconnect
        if auto_reconnect:
            self._supervisor.enable()
        else:
            self._supervisor.disable()

        self._heartbeat.start()

    async def disconnect(self) -> None:
        """Stop supervision and close the connection normally.

        Safe to call when already disconnected. The heartbeat sender keeps
        running; it no-ops until the next connect. A recovery in flight is
        cancelled and allowed to finish its cleanup first.
        """
        self._supervisor.disable()
        async with self._exclusive():
            transport = self._transport
            transport.set_message_handler(None)
            try:
                await transport.close(NORMAL_CLOSURE)
            except Exception as err:
                self._logger.error("[%s] Close failed: %s", self.host, err)

    async def close(self) -> None:
        """Disconnect and stop the heartbeat sender."""
        self._logger.debug("[%s] Closing client", self.host)
        await self.disconnect()
        await self._heartbeat.stop()

    async def login(self, api_key: str, secret: str, passphrase: str) -> bool:
        """Send the signed login frame.

        The outcome arrives later as an ordinary inbound message.

        Returns:
            True if the frame was sent, False otherwise
        """
        return await self.send(self._signer(api_key, secret, passphrase))

    async def send(self, text: str) -> bool:
        """Send a text frame if the connection is open.

        Returns:
            True if sent, False when not open or the send failed
        """
        transport = self._transport
        try:
            if transport.state is not ConnectionState.OPEN:
                return False
            await transport.send(text)
            return True
        except Exception as err:
            self._logger.error("[%s] Failed to send message: %s", self.host, err)
            return False

    @property
    def state(self) -> ConnectionState:
        """Ready state of the current transport."""
        return self._transport.state

    @property
    def is_connected(self) -> bool:
        return self._transport.state is ConnectionState.OPEN

    @property
    def auto_reconnect(self) -> bool:
        return self._auto_reconnect

    @property
    def transport(self) -> OkexTransport:
        """Current transport instance (replaced on re-initialize)."""
        return self._transport

    @property
    def settings(self) -> OkexWsSettings:
        return self._settings

    def seconds_since_last_received(self) -> float:
        """Seconds since the last frame or open."""
        return self._tracker.elapsed()

    # -------------------------------------------------------------------------
    # Public API: Subscriptions
    # -------------------------------------------------------------------------

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        """Register a callback for application messages.

        Returns:
            A function that removes the callback
        """
        self._message_callbacks.append(callback)
        return lambda: self.remove_message_handler(callback)

    def on_open(self, callback: OpenCallback) -> Callable[[], None]:
        """Register a callback for connection opens.

        Returns:
            A function that removes the callback
        """
        self._open_callbacks.append(callback)
        return lambda: self.remove_open_handler(callback)

    def remove_message_handler(self, callback: MessageCallback) -> None:
        if callback in self._message_callbacks:
            self._message_callbacks.remove(callback)

    def remove_open_handler(self, callback: OpenCallback) -> None:
        if callback in self._open_callbacks:
            self._open_callbacks.remove(callback)

    # -------------------------------------------------------------------------
    # Internal: Transport Handlers
    # -------------------------------------------------------------------------

    async def _handle_open(self) -> None:
        self._logger.debug("[%s] WebSocket opened", self.host)
        self._tracker.touch()
        for callback in list(self._open_callbacks):
            await self._notify(callback)

    async def _handle_message(self, frame: OkexWsFrame) -> None:
        self._tracker.touch()

        if frame.is_binary:
            payload = decompress(bytes(frame.data))
            if not payload:
                return
        else:
            payload = str(frame.data)

        if payload == self._settings.heartbeat_reply_token:
            return

        for callback in list(self._message_callbacks):
            await self._notify(callback, payload)

    async def _handle_error(self, message: str, err: BaseException | None) -> None:
        self._logger.error("[%s] WebSocket error: %s", self.host, message, exc_info=err)

    async def _notify(self, callback: Callable[..., object], *args: object) -> None:
        try:
            result = callback(*args)
            if inspect.iscoroutine(result):
                await result
        except Exception as err:
            self._logger.exception("[%s] Subscriber callback error: %s", self.host, err)

    # -------------------------------------------------------------------------
    # Internal: Recovery
    # -------------------------------------------------------------------------

    def _default_transport(self, url: str) -> OkexTransport:
        return WebsocketTransport(url, timeout=self._settings.connect_timeout)

    def _build_transport(self) -> OkexTransport:
        """Build a transport with open/error handlers and a fresh baseline."""
        transport = self._transport_factory(self.host)
        transport.set_open_handler(self._handle_open)
        transport.set_error_handler(self._handle_error)
        self._tracker.reset()
        return transport

    @contextlib.asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        """Hold the transport lock.

        Reentrant for the holding task, so a subscriber that disconnects
        from inside a recovery does not deadlock.
        """
        current = asyncio.current_task()
        if self._lock_owner is not None and self._lock_owner is current:
            yield
            return
        async with self._transport_lock:
            self._lock_owner = current
            try:
                yield
            finally:
                self._lock_owner = None

    async def _reconnect(self) -> None:
        """Close and reopen the same transport instance."""
        async with self._exclusive():
            transport = self._transport
            self._logger.info("[%s] Reconnecting", self.host)
            try:
                await transport.close(NORMAL_CLOSURE)
                await transport.connect()
            except Exception as err:
                self._logger.error("[%s] Reconnect failed: %s", self.host, err)

    async def _reinitialize(self) -> None:
        """Discard the transport, build a new one and connect it."""
        async with self._exclusive():
            self._logger.info("[%s] Re-initializing transport", self.host)
            self._supervisor.disable()

            old = self._transport
            # No callback from the old instance may fire past this point.
            old.detach_handlers()
            try:
                await old.close(NORMAL_CLOSURE)
            except Exception as err:
                self._logger.error("[%s] Close failed: %s", self.host, err)
            finally:
                # Installed even if cancelled mid-close; a detached
                # transport must never stay in the slot.
                self._transport = self._build_transport()

            await self.connect(auto_reconnect=True)
