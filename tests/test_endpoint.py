import asyncio

import pytest

from sockprobe.endpoint import ConnectionEndpoint
from sockprobe.errors import ConnectionFailedError, SendError


class _Collector:
    def __init__(self, expected: int = 1) -> None:
        self.frames: list[object] = []
        self.expected = expected
        self.done = asyncio.Event()

    def __call__(self, frame: object) -> None:
        self.frames.append(frame)
        if len(self.frames) >= self.expected:
            self.done.set()


@pytest.mark.asyncio
async def test_open_send_and_receive_echo(echo_server_uri: str) -> None:
    endpoint = await ConnectionEndpoint.open(echo_server_uri)
    collector = _Collector()
    endpoint.set_handler(collector)
    try:
        await endpoint.send("Hello Server")
        await asyncio.wait_for(collector.done.wait(), timeout=2)
    finally:
        await endpoint.close()

    assert collector.frames == ["Hello Server"]
    assert endpoint.closed


@pytest.mark.asyncio
async def test_open_fails_with_connection_failed_error() -> None:
    with pytest.raises(ConnectionFailedError):
        await ConnectionEndpoint.open("ws://127.0.0.1:1", open_timeout=2)


@pytest.mark.asyncio
async def test_open_rejects_non_websocket_uri() -> None:
    with pytest.raises(ConnectionFailedError):
        await ConnectionEndpoint.open("http://127.0.0.1:1")


@pytest.mark.asyncio
async def test_send_after_close_raises_send_error(echo_server_uri: str) -> None:
    endpoint = await ConnectionEndpoint.open(echo_server_uri)
    await endpoint.close()

    with pytest.raises(SendError):
        await endpoint.send("too late")


@pytest.mark.asyncio
async def test_close_is_idempotent(echo_server_uri: str) -> None:
    endpoint = await ConnectionEndpoint.open(echo_server_uri)
    await endpoint.close()
    await endpoint.close()
    assert endpoint.closed


@pytest.mark.asyncio
async def test_replacing_handler_discards_previous_one(echo_server_uri: str) -> None:
    endpoint = await ConnectionEndpoint.open(echo_server_uri)
    first = _Collector()
    second = _Collector()
    try:
        endpoint.set_handler(first)
        endpoint.set_handler(second)
        await endpoint.send("ping")
        await asyncio.wait_for(second.done.wait(), timeout=2)
    finally:
        await endpoint.close()

    assert first.frames == []
    assert second.frames == ["ping"]


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_reader(echo_server_uri: str) -> None:
    endpoint = await ConnectionEndpoint.open(echo_server_uri)
    received: list[object] = []
    done = asyncio.Event()

    def _handler(frame: object) -> None:
        received.append(frame)
        if frame == "first":
            raise RuntimeError("handler broke on purpose")
        done.set()

    endpoint.set_handler(_handler)
    try:
        await endpoint.send("first")
        await endpoint.send("second")
        await asyncio.wait_for(done.wait(), timeout=2)
    finally:
        await endpoint.close()

    assert received == ["first", "second"]
