"""Connection actor mediating between probes and one endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import suppress
from enum import StrEnum

from loguru import logger

from sockprobe.endpoint import ConnectionEndpoint, EndpointProtocol, Opener
from sockprobe.envelope import Failure, InboundFrame, Message, Payload, Stimulus
from sockprobe.errors import ActorStoppedError, MailboxFullError, SendError
from sockprobe.logging_utils import bind_unit
from sockprobe.mailbox import DEFAULT_MAILBOX_SIZE, Address, new_address

Correlate = Callable[[Payload], str | None]


class ActorState(StrEnum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class ConnectionActor:
    """Forward stimuli to an endpoint and route inbound frames to their sender.

    Stimuli and inbound frames share one mailbox. A single consumer task
    drains it, so the routing state is only ever touched by that task.

    Without a ``correlate`` function every frame goes to the most recent
    sender; frames are dropped when nobody has sent anything yet. With one,
    frames whose key matches a pending ``correlation_id`` go to the stimulus
    that carried it.
    """

    def __init__(
        self,
        endpoint: EndpointProtocol,
        *,
        name: str = "connection",
        correlate: Correlate | None = None,
        mailbox_size: int = DEFAULT_MAILBOX_SIZE,
    ) -> None:
        self.address = new_address(name, maxsize=mailbox_size)
        self._endpoint = endpoint
        self._correlate = correlate
        self._last_sender: Address | None = None
        self._pending: dict[str, Address] = {}
        self._max_pending = mailbox_size
        self._state = ActorState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        endpoint.set_handler(self._on_frame)

    @classmethod
    async def spawn(
        cls,
        uri: str,
        *,
        opener: Opener | None = None,
        name: str | None = None,
        correlate: Correlate | None = None,
        mailbox_size: int = DEFAULT_MAILBOX_SIZE,
    ) -> ConnectionActor:
        """Open an endpoint for ``uri`` and start an actor around it.

        Raises:
            ConnectionFailedError: the endpoint could not be opened; no actor exists.
        """
        endpoint = await (opener or ConnectionEndpoint.open)(uri)
        actor = cls(endpoint, name=name or "connection", correlate=correlate, mailbox_size=mailbox_size)
        actor.start()
        logger.info("actor.spawn address={} uri={}", actor.address, uri)
        return actor

    @property
    def state(self) -> ActorState:
        return self._state

    @property
    def last_sender(self) -> Address | None:
        return self._last_sender

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def pending_correlations(self) -> int:
        return len(self._pending)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"sockprobe-actor:{self.address}")

    def tell(self, payload: str, reply_to: Address, *, correlation_id: str | None = None) -> None:
        """Queue a stimulus without waiting for it to be sent.

        Called from another thread the stimulus is only scheduled, so a full
        mailbox is logged rather than raised as ``MailboxFullError``.
        """
        if self._stopped:
            raise ActorStoppedError(f"actor {self.address} is stopped")
        if not self.address.tell(Stimulus(payload, reply_to, correlation_id)):
            raise MailboxFullError(f"mailbox of {self.address} is full")

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.address.mailbox.close()
        self._endpoint.set_handler(None)
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._endpoint.close()
        logger.info("actor.stopped address={}", self.address)

    def _on_frame(self, payload: Payload) -> None:
        # May run outside the actor's task, possibly on another thread.
        self.address.tell(InboundFrame(payload))

    async def _run(self) -> None:
        bind_unit(self.address.name)
        mailbox = self.address.mailbox
        while True:
            item = await mailbox.get()
            try:
                if isinstance(item, Stimulus):
                    await self._handle_stimulus(item)
                elif isinstance(item, InboundFrame):
                    self._handle_frame(item.payload)
                else:
                    logger.warning("actor.item.unknown address={} item={!r}", self.address, item)
            except Exception:
                logger.exception("actor.error address={}", self.address)

    async def _handle_stimulus(self, stimulus: Stimulus) -> None:
        self._last_sender = stimulus.reply_to
        if stimulus.correlation_id is not None:
            self._pending.pop(stimulus.correlation_id, None)
            self._pending[stimulus.correlation_id] = stimulus.reply_to
            if len(self._pending) > self._max_pending:
                # replies that never came; oldest first
                stale = next(iter(self._pending))
                del self._pending[stale]
                logger.debug("actor.correlation.expired address={} correlation_id={}", self.address, stale)
        self._state = ActorState.AWAITING_REPLY
        logger.debug(
            "actor.stimulus address={} reply_to={} payload={!r}", self.address, stimulus.reply_to, stimulus.payload
        )
        try:
            await self._endpoint.send(stimulus.payload)
        except SendError as exc:
            logger.warning("actor.send.failed address={} reply_to={} error={}", self.address, stimulus.reply_to, exc)
            if stimulus.correlation_id is not None:
                self._pending.pop(stimulus.correlation_id, None)
            self._state = ActorState.IDLE
            stimulus.reply_to.tell(Failure(exc, self.address))

    def _handle_frame(self, payload: Payload) -> None:
        destination = self._route(payload)
        if destination is None:
            logger.info("actor.frame.undeliverable address={} payload={!r}", self.address, payload)
            return
        destination.tell(Message(payload, self.address))
        self._state = ActorState.IDLE

    def _route(self, payload: Payload) -> Address | None:
        if self._correlate is not None and self._pending:
            try:
                key = self._correlate(payload)
            except Exception:
                logger.exception("actor.correlate.error address={}", self.address)
                key = None
            if key is not None and key in self._pending:
                return self._pending.pop(key)
        return self._last_sender
