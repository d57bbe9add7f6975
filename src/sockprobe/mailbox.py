"""Bounded mailboxes and the addresses that refer to them."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

DEFAULT_MAILBOX_SIZE = 1000


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Mailbox:
    """Single-consumer FIFO queue owned by one concurrent unit.

    Deliveries may come from any thread; items are put on the owning loop so
    that send order is kept per producer. Once closed, deliveries are dropped.
    """

    def __init__(self, name: str, *, maxsize: int = DEFAULT_MAILBOX_SIZE) -> None:
        self.name = name
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._loop = asyncio.get_running_loop()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._closed = True

    def deliver(self, item: Any) -> bool:
        """Enqueue without blocking. Returns False when the item was dropped.

        From outside the owning loop the item is only scheduled: True means it
        was handed to the loop, and a full queue is then reported by a
        ``mailbox.full`` warning instead of the return value.
        """
        if self._closed:
            logger.debug("mailbox.dead_letter name={} item={!r}", self.name, item)
            return False
        if _running_loop() is self._loop:
            return self._put(item)
        try:
            self._loop.call_soon_threadsafe(self._put, item)
        except RuntimeError:
            # owning loop is closed
            logger.debug("mailbox.dead_letter name={} item={!r}", self.name, item)
            return False
        return True

    def _put(self, item: Any) -> bool:
        if self._closed:
            logger.debug("mailbox.dead_letter name={} item={!r}", self.name, item)
            return False
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            logger.warning("mailbox.full name={} size={}", self.name, self._queue.maxsize)
            return False
        return True

    def full(self) -> bool:
        return self._queue.full()

    def get_nowait(self) -> Any | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def get(self, timeout_seconds: float | None = None) -> Any | None:
        """Wait for the next item; None when the timeout elapses first."""
        if not self._queue.empty():
            return self._queue.get_nowait()
        if timeout_seconds is None:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout_seconds)
        except TimeoutError:
            return None


@dataclass(frozen=True)
class Address:
    """Comparable identity of a unit, usable as a reply destination."""

    name: str
    mailbox: Mailbox = field(compare=False, repr=False)
    uid: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def tell(self, item: Any) -> bool:
        return self.mailbox.deliver(item)

    def __str__(self) -> str:
        return f"{self.name}#{self.uid}"


def new_address(name: str, *, maxsize: int = DEFAULT_MAILBOX_SIZE) -> Address:
    """Create a mailbox and the address referring to it."""
    return Address(name=name, mailbox=Mailbox(name, maxsize=maxsize))
