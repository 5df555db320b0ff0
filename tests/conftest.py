"""Pytest configuration and fixtures for okex_transport tests."""

from __future__ import annotations

import asyncio
import zlib
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from okex_transport import OkexWsClient
from okex_transport.errors import OkexConnectionError
from okex_transport.transport import ConnectionState, OkexTransport, OkexWsFrame

TEST_HOST = "wss://feed.test.invalid:8443/ws/v3"


def deflate(text: str) -> bytes:
    """Compress text as a raw deflate stream, the way the feed does."""
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return compressor.compress(text.encode("utf-8")) + compressor.flush()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport(OkexTransport):
    """In-memory transport recording every call made by the client."""

    def __init__(self, url: str) -> None:
        super().__init__(url)
        self._state = ConnectionState.UNINITIALIZED
        self.connect_calls = 0
        self.close_calls: list[int] = []
        self.sent: list[str] = []
        self.connect_error: Exception | None = None
        self.send_error: Exception | None = None
        # When set, connect/close park until the gate opens
        self.connect_gate: asyncio.Event | None = None
        self.close_gate: asyncio.Event | None = None
        self.connect_entered = asyncio.Event()
        self.close_entered = asyncio.Event()

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        self.connect_calls += 1
        self._state = ConnectionState.CONNECTING
        self.connect_entered.set()
        if self.connect_gate is not None:
            try:
                await self.connect_gate.wait()
            except BaseException:
                self._state = ConnectionState.CLOSED
                raise
        if self.connect_error is not None:
            self._state = ConnectionState.CLOSED
            raise self.connect_error
        self._state = ConnectionState.OPEN
        await self._dispatch_open()

    async def send(self, text: str) -> None:
        if self._state is not ConnectionState.OPEN:
            raise OkexConnectionError("WebSocket is not connected")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(text)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append(code)
        self.close_entered.set()
        if self.close_gate is not None:
            await self.close_gate.wait()
        if self._state is ConnectionState.UNINITIALIZED:
            return
        self._state = ConnectionState.CLOSED

    async def receive_text(self, text: str) -> None:
        await self._dispatch_message(OkexWsFrame(is_binary=False, data=text))

    async def receive_binary(self, data: bytes) -> None:
        await self._dispatch_message(OkexWsFrame(is_binary=True, data=data))

    async def fail(self, message: str, err: BaseException | None = None) -> None:
        await self._dispatch_error(message, err)


class TransportRecorder:
    """Transport factory that keeps every instance it built."""

    def __init__(self) -> None:
        self.instances: list[FakeTransport] = []

    def __call__(self, url: str) -> FakeTransport:
        transport = FakeTransport(url)
        self.instances.append(transport)
        return transport


class AsyncIteratorMock:
    """Websocket connection mock yielding a fixed list of frames."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._items):
            if self._raise_on_iter is not None:
                raise self._raise_on_iter
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


class IdleConnectionMock:
    """Websocket connection mock that stays open until closed."""

    def __init__(self) -> None:
        self._closed = asyncio.Event()
        self.send = AsyncMock()
        self.close = AsyncMock(side_effect=self._on_close)

    async def _on_close(self, *args) -> None:
        self._closed.set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        await self._closed.wait()
        raise StopAsyncIteration


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transports() -> TransportRecorder:
    return TransportRecorder()


@pytest_asyncio.fixture
async def client(clock: FakeClock, transports: TransportRecorder):
    """Client wired to fake transports and a fake clock."""
    ws_client = OkexWsClient(
        host=TEST_HOST,
        transport_factory=transports,
        clock=clock,
    )
    yield ws_client
    await ws_client.close()
