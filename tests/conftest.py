from __future__ import annotations

import asyncio

import pytest

from sockprobe.envelope import Payload
from sockprobe.errors import SendError

pytest_plugins = ["sockprobe.pytest_plugin"]


class FakeEndpoint:
    def __init__(self, *, fail_sends: bool = False) -> None:
        self.sent: list[str] = []
        self.handler = None
        self.closed = False
        self.fail_sends = fail_sends
        self.send_attempts = 0

    def set_handler(self, handler) -> None:
        self.handler = handler

    async def send(self, payload: str) -> None:
        self.send_attempts += 1
        if self.fail_sends or self.closed:
            raise SendError("session is closed")
        self.sent.append(payload)

    async def close(self) -> None:
        self.closed = True

    def push(self, payload: Payload) -> None:
        if self.handler is not None:
            self.handler(payload)

    async def wait_for_attempts(self, count: int, timeout: float = 1.0) -> None:
        async with asyncio.timeout(timeout):
            while self.send_attempts < count:
                await asyncio.sleep(0.001)


@pytest.fixture
def fake_endpoint() -> FakeEndpoint:
    return FakeEndpoint()
