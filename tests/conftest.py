from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any, NamedTuple

import aiohttp
import pytest

from pyrtls.config import RtlsConfig


class FakeMessage(NamedTuple):
    type: aiohttp.WSMsgType
    data: Any = None
    extra: Any = None


class FakeWebSocket:
    """In-memory stand-in for ``aiohttp.ClientWebSocketResponse``."""

    def __init__(self, url: str, *, auto_confirm: bool = False) -> None:
        self.url = url
        self.auto_confirm = auto_confirm
        self.sent: list[dict[str, Any]] = []
        self.close_calls: list[tuple[int, bytes]] = []
        self.close_code: int | None = None
        self._inbox: asyncio.Queue[FakeMessage] = asyncio.Queue()

    async def send_str(self, data: str) -> None:
        if self.close_code is not None:
            raise aiohttp.ClientConnectionError("Cannot write to closing transport")
        frame = json.loads(data)
        self.sent.append(frame)
        if self.auto_confirm and frame.get("type") == "SUBSCRIBE":
            confirmation: dict[str, Any] = {"type": "SUBSCRIPTION_CONFIRMATION"}
            if "data_type_filter" in frame:
                confirmation["types"] = frame["data_type_filter"]
            self.push_json(confirmation)

    async def receive(self) -> FakeMessage:
        return await self._inbox.get()

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.close_calls.append((code, message))
        if self.close_code is None:
            self.close_code = code
            self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSED))
        return True

    # Server-side helpers

    def push_json(self, payload: Any) -> None:
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, json.dumps(payload)))

    def push_text(self, text: str) -> None:
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, text))

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the server closing the connection."""
        self.close_code = code
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSE, code, reason))

    def frames(self, frame_type: str) -> list[dict[str, Any]]:
        return [frame for frame in self.sent if frame.get("type") == frame_type]


class FakeServer:
    """Factory passed as ``ws_connect``; records every handshake."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []
        self.failures: list[BaseException] = []
        self.auto_confirm = True

    async def connect(self, url: str) -> FakeWebSocket:
        self.urls.append(url)
        if self.failures:
            raise self.failures.pop(0)
        ws = FakeWebSocket(url, auto_confirm=self.auto_confirm)
        self.sockets.append(ws)
        return ws

    @property
    def last(self) -> FakeWebSocket:
        return self.sockets[-1]

    def sockets_for(self, path: str) -> list[FakeWebSocket]:
        return [ws for ws in self.sockets if path in ws.url]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


def make_config(**overrides: Any) -> RtlsConfig:
    values: dict[str, Any] = {
        "namespace": "test-ns",
        "api_key": "key-123",
        "map_uuid": "map-1",
        "reconnect_interval": 0.01,
        "max_reconnect_delay": 0.05,
        "connection_timeout": 1.0,
        "close_timeout": 0.5,
    }
    values.update(overrides)
    return RtlsConfig(**values)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def config() -> RtlsConfig:
    return make_config()
