import asyncio
import re

import pytest

from sockprobe.envelope import Failure, Message
from sockprobe.errors import (
    ExpectationError,
    ExpectTimeoutError,
    ExtraMessageError,
    SendError,
    UnexpectedMessageError,
)
from sockprobe.probe import Probe


@pytest.mark.asyncio
async def test_expect_message_returns_pending_message_immediately() -> None:
    probe = Probe()
    probe.address.tell(Message("ready"))

    message = await probe.expect_message("ready", timeout=0)
    assert message.payload == "ready"


@pytest.mark.asyncio
async def test_expect_message_waits_for_late_arrival() -> None:
    probe = Probe()
    asyncio.get_running_loop().call_later(0.05, probe.address.tell, Message("late"))

    message = await probe.expect_message(timeout=1)
    assert message.payload == "late"


@pytest.mark.asyncio
async def test_expect_message_times_out_as_assertion_failure() -> None:
    probe = Probe(expect_timeout=0.05)

    with pytest.raises(ExpectTimeoutError) as excinfo:
        await probe.expect_message("never")

    assert isinstance(excinfo.value, AssertionError)
    assert isinstance(excinfo.value, ExpectationError)
    assert "never" in str(excinfo.value)


@pytest.mark.asyncio
async def test_expect_message_rejects_mismatched_payload() -> None:
    probe = Probe()
    probe.address.tell(Message("goodbye"))

    with pytest.raises(UnexpectedMessageError, match="goodbye"):
        await probe.expect_message("hello", timeout=0.1)


@pytest.mark.asyncio
async def test_expect_message_accepts_full_pattern_match() -> None:
    probe = Probe()
    probe.address.tell(Message("order-42 accepted"))
    probe.address.tell(Message("order-43 accepted later"))

    await probe.expect_message(re.compile(r"order-\d+ accepted"), timeout=0.1)
    with pytest.raises(UnexpectedMessageError):
        await probe.expect_message(re.compile(r"order-\d+ accepted"), timeout=0.1)


@pytest.mark.asyncio
async def test_bytes_payload_never_matches_text_pattern() -> None:
    probe = Probe()
    probe.address.tell(Message(b"\x00\x01"))

    with pytest.raises(UnexpectedMessageError):
        await probe.expect_message(re.compile(".*"), timeout=0.1)


@pytest.mark.asyncio
async def test_failure_is_raised_from_expect_message() -> None:
    probe = Probe()
    probe.address.tell(Failure(SendError("session is closed")))

    with pytest.raises(SendError, match="session is closed"):
        await probe.expect_message(timeout=0.1)


@pytest.mark.asyncio
async def test_expect_no_message_passes_on_silence() -> None:
    probe = Probe(no_message_window=0.05)
    await probe.expect_no_message()


@pytest.mark.asyncio
async def test_expect_no_message_fails_when_message_arrives_inside_window() -> None:
    probe = Probe()
    asyncio.get_running_loop().call_later(0.02, probe.address.tell, Message("surprise"))

    with pytest.raises(ExtraMessageError, match="surprise"):
        await probe.expect_no_message(0.5)


@pytest.mark.asyncio
async def test_expect_no_message_ignores_messages_after_window() -> None:
    probe = Probe()
    asyncio.get_running_loop().call_later(0.2, probe.address.tell, Message("after"))

    await probe.expect_no_message(0.05)
    message = await probe.expect_message("after", timeout=1)
    assert message.payload == "after"


@pytest.mark.asyncio
async def test_receive_collects_n_messages_in_order() -> None:
    probe = Probe()
    for payload in ("1", "2", "3"):
        probe.address.tell(Message(payload))

    messages = await probe.receive(2, timeout=0.1)

    assert [m.payload for m in messages] == ["1", "2"]
    assert probe.pending() == 1


@pytest.mark.asyncio
async def test_receive_times_out_with_partial_count() -> None:
    probe = Probe()
    probe.address.tell(Message("only"))

    with pytest.raises(ExpectTimeoutError, match="1 of 2"):
        await probe.receive(2, timeout=0.05)


@pytest.mark.asyncio
async def test_closed_probe_discards_late_messages() -> None:
    probe = Probe()
    with pytest.raises(ExpectTimeoutError):
        await probe.expect_message(timeout=0.01)
    probe.close()

    assert probe.address.tell(Message("too late")) is False
    assert probe.closed
    assert probe.pending() == 0
