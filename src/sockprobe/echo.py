"""Local WebSocket endpoints for exercising probes."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from loguru import logger
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

ConnectionHandler = Callable[[ServerConnection], Awaitable[None]]


async def echo(connection: ServerConnection) -> None:
    """Send every received frame back unchanged."""
    try:
        async for message in connection:
            await connection.send(message)
    except ConnectionClosed:
        logger.debug("echo.connection.lost remote={}", connection.remote_address)


def server_uri(server: Server) -> str:
    host, port = next(iter(server.sockets)).getsockname()[:2]
    return f"ws://{host}:{port}"


@asynccontextmanager
async def serve_endpoint(
    handler: ConnectionHandler = echo, host: str = "127.0.0.1", port: int = 0
) -> AsyncIterator[str]:
    """Serve ``handler`` for the duration of the block and yield its URI."""
    server = await serve(handler, host, port)
    uri = server_uri(server)
    logger.info("echo.serving uri={}", uri)
    try:
        yield uri
    finally:
        server.close()
        await server.wait_closed()
        logger.info("echo.stopped uri={}", uri)


async def run_echo_server(host: str, port: int) -> None:
    async with serve_endpoint(echo, host, port):
        await asyncio.Future()
