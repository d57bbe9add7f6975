"""WebSocket connection endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Protocol

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from sockprobe.envelope import Payload
from sockprobe.errors import ConnectionFailedError, SendError

FrameHandler = Callable[[Payload], None]


class EndpointProtocol(Protocol):
    """Minimal contract a connection actor needs from its endpoint."""

    @property
    def closed(self) -> bool: ...

    async def send(self, payload: str) -> None: ...

    def set_handler(self, handler: FrameHandler | None) -> None: ...

    async def close(self) -> None: ...


Opener = Callable[[str], Awaitable[EndpointProtocol]]


class ConnectionEndpoint:
    """One live WebSocket session with a single inbound frame handler."""

    def __init__(self, uri: str, session: ClientConnection) -> None:
        self.uri = uri
        self._session = session
        self._handler: FrameHandler | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    async def open(cls, uri: str, *, open_timeout: float | None = 10.0) -> ConnectionEndpoint:
        """Connect to ``uri`` and start reading frames.

        Raises:
            ConnectionFailedError: the handshake or the underlying I/O failed.
        """
        try:
            session = await connect(uri, open_timeout=open_timeout)
        except (OSError, WebSocketException) as exc:
            logger.warning("endpoint.open.failed uri={} error={}", uri, exc)
            raise ConnectionFailedError(f"cannot connect to {uri}: {exc}") from exc
        endpoint = cls(uri, session)
        endpoint._reader = asyncio.create_task(endpoint._read(), name=f"sockprobe-reader:{uri}")
        logger.info("endpoint.open uri={}", uri)
        return endpoint

    @property
    def closed(self) -> bool:
        return self._closed or self._session.protocol.state is State.CLOSED

    def set_handler(self, handler: FrameHandler | None) -> None:
        """Register the inbound frame handler, replacing any previous one."""
        self._handler = handler

    async def send(self, payload: str) -> None:
        if self._closed:
            raise SendError(f"session to {self.uri} is closed")
        try:
            await self._session.send(payload)
        except (ConnectionClosed, OSError) as exc:
            raise SendError(f"cannot send to {self.uri}: {exc}") from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._session.close()
        if self._reader is not None:
            self._reader.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        logger.info("endpoint.closed uri={}", self.uri)

    async def _read(self) -> None:
        try:
            async for frame in self._session:
                self._dispatch(frame)
        except ConnectionClosed as exc:
            logger.warning("endpoint.connection.lost uri={} reason={}", self.uri, exc)

    def _dispatch(self, frame: Payload) -> None:
        handler = self._handler
        if handler is None:
            logger.debug("endpoint.frame.unhandled uri={} frame={!r}", self.uri, frame)
            return
        try:
            handler(frame)
        except Exception:
            logger.exception("endpoint.handler.error uri={}", self.uri)
