"""Test unit with a private mailbox and bounded expectations."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any

from loguru import logger

from sockprobe.envelope import Failure, Message, Payload, describe
from sockprobe.errors import ExpectTimeoutError, ExtraMessageError, UnexpectedMessageError
from sockprobe.mailbox import DEFAULT_MAILBOX_SIZE, new_address

if TYPE_CHECKING:
    from sockprobe.actor import ConnectionActor

Expected = str | bytes | re.Pattern[str] | re.Pattern[bytes]

DEFAULT_EXPECT_TIMEOUT = 3.0
DEFAULT_NO_MESSAGE_WINDOW = 0.5


def _matches(expected: Expected, payload: Payload) -> bool:
    if isinstance(expected, re.Pattern):
        if not isinstance(payload, type(expected.pattern)):
            return False
        return expected.fullmatch(payload) is not None  # type: ignore[arg-type]
    return payload == expected


def _describe_expected(expected: Expected) -> str:
    if isinstance(expected, re.Pattern):
        return f"payload matching {expected.pattern!r}"
    return repr(expected)


class Probe:
    """One test case's view of the system.

    A probe sends stimuli with its own address as reply destination and then
    waits on its private mailbox. Waiting suspends only the calling task.
    """

    def __init__(
        self,
        name: str = "probe",
        *,
        expect_timeout: float = DEFAULT_EXPECT_TIMEOUT,
        no_message_window: float = DEFAULT_NO_MESSAGE_WINDOW,
        mailbox_size: int = DEFAULT_MAILBOX_SIZE,
    ) -> None:
        self.address = new_address(name, maxsize=mailbox_size)
        self.expect_timeout = expect_timeout
        self.no_message_window = no_message_window

    @property
    def name(self) -> str:
        return self.address.name

    @property
    def closed(self) -> bool:
        return self.address.mailbox.closed

    def pending(self) -> int:
        return len(self.address.mailbox)

    def send(self, actor: ConnectionActor, payload: str, *, correlation_id: str | None = None) -> None:
        actor.tell(payload, self.address, correlation_id=correlation_id)

    async def expect_message(self, expected: Expected | None = None, timeout: float | None = None) -> Message:
        """Return the next message, failing if none arrives in time.

        Args:
            expected: Exact payload, or a compiled pattern the payload must fully match.
            timeout: Seconds to wait; defaults to ``expect_timeout``.

        Raises:
            ExpectTimeoutError: nothing arrived before the deadline.
            UnexpectedMessageError: the payload did not match ``expected``.
            SendError: the stimulus this probe sent could not be forwarded.
        """
        timeout = self.expect_timeout if timeout is None else timeout
        item = await self.address.mailbox.get(timeout)
        if item is None:
            suffix = f" while waiting for {_describe_expected(expected)}" if expected is not None else ""
            raise ExpectTimeoutError(f"{self.address}: no message within {timeout:.3f}s{suffix}")
        message = self._unwrap(item)
        if expected is not None and not _matches(expected, message.payload):
            raise UnexpectedMessageError(
                f"{self.address}: expected {_describe_expected(expected)}, got {message.payload!r}"
            )
        logger.debug("probe.received address={} payload={!r}", self.address, message.payload)
        return message

    async def expect_no_message(self, window: float | None = None) -> None:
        """Fail if any message is delivered within ``window`` seconds."""
        window = self.no_message_window if window is None else window
        item = await self.address.mailbox.get(window)
        if item is not None:
            raise ExtraMessageError(f"{self.address}: unexpected message {describe(item)} within {window:.3f}s")

    async def receive(self, n: int, timeout: float | None = None) -> list[Message]:
        """Collect exactly ``n`` messages under one overall deadline."""
        timeout = self.expect_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        messages: list[Message] = []
        while len(messages) < n:
            item = await self.address.mailbox.get(max(deadline - loop.time(), 0))
            if item is None:
                raise ExpectTimeoutError(
                    f"{self.address}: received {len(messages)} of {n} messages within {timeout:.3f}s"
                )
            messages.append(self._unwrap(item))
        return messages

    def close(self) -> None:
        """Stop accepting deliveries; late messages are discarded."""
        self.address.mailbox.close()

    @staticmethod
    def _unwrap(item: Any) -> Message:
        if isinstance(item, Failure):
            raise item.error
        return item
