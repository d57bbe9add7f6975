"""Message types exchanged between probes and connection actors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sockprobe.errors import SockProbeError

if TYPE_CHECKING:
    from sockprobe.mailbox import Address

Payload = str | bytes


@dataclass(frozen=True)
class Message:
    """Payload delivered to one unit's mailbox."""

    payload: Payload
    sender: Address | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class Failure:
    """Notification that a stimulus could not be forwarded."""

    error: SockProbeError
    sender: Address | None = None


@dataclass(frozen=True)
class Stimulus:
    """Outbound payload together with the address that awaits the reply."""

    payload: str
    reply_to: Address
    correlation_id: str | None = None


@dataclass(frozen=True)
class InboundFrame:
    """Frame received from the endpoint, queued for the owning actor."""

    payload: Payload


def describe(item: object) -> str:
    """Short printable form of a mailbox item for logs and error messages."""

    if isinstance(item, Message):
        return repr(item.payload)
    if isinstance(item, Failure):
        return f"failure({item.error})"
    return repr(item)
