"""Unit tests for the single-exchange NRPE session."""

from __future__ import annotations

import asyncio
import random

import pytest

from nrpe_bridge.protocol.exceptions import ChecksumMismatchError, CommandTooLongError, TypeMismatchError
from nrpe_bridge.protocol.nrpe_protocol import NrpeProtocol, decode_query
from nrpe_bridge.protocol.packet_types import MAX_PACKETBUFFER_LENGTH, PACKET_LENGTH, NrpeCommand, NrpeStatus
from nrpe_bridge.transport.exceptions import DialError, ExchangeTimeoutError, FrameIOError, SessionStateError
from nrpe_bridge.transport.session import NrpeSession, run_command
from nrpe_bridge.transport.types import CommandResult, SessionState

# Test constants
TEST_TARGET = "10.0.0.5:5666"
LOAD_OUTPUT = "OK - load average: 0.01|load1=0.010;15;30;0"
EXCHANGE_TIMEOUT = 0.05
SLOW_PEER_DELAY = 1.0


class FakeStream:
    """In-memory ByteStream returning a canned response."""

    def __init__(
        self,
        response: bytes = b"",
        *,
        send_error: Exception | None = None,
        recv_error: Exception | None = None,
        recv_delay: float = 0.0,
    ):
        self.response = response
        self.send_error = send_error
        self.recv_error = recv_error
        self.recv_delay = recv_delay
        self.sent: list[bytes] = []
        self.close_calls = 0

    async def send_all(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    async def recv_exactly(self, size: int) -> bytes:
        if self.recv_delay:
            await asyncio.sleep(self.recv_delay)
        if self.recv_error is not None:
            raise self.recv_error
        assert size == PACKET_LENGTH
        return self.response

    async def close(self) -> None:
        self.close_calls += 1


def _factory(stream: FakeStream):
    async def open_stream() -> FakeStream:
        return stream

    return open_stream


@pytest.fixture
def codec() -> NrpeProtocol:
    """Seeded codec shared by the fake agent and the session."""
    return NrpeProtocol(random.Random(42))


@pytest.mark.asyncio
async def test_run_command_success(codec: NrpeProtocol) -> None:
    """Test one query is written, one response read, and the stream closed."""
    stream = FakeStream(codec.encode_response(NrpeStatus.WARNING, LOAD_OUTPUT).raw)
    command = NrpeCommand("check_load", ("-w", "15"))

    result = await run_command(_factory(stream), command, protocol=codec, target=TEST_TARGET)

    assert result == CommandResult(status=NrpeStatus.WARNING, output_text=LOAD_OUTPUT)
    assert result.ok is False
    assert len(stream.sent) == 1
    assert len(stream.sent[0]) == PACKET_LENGTH
    assert decode_query(stream.sent[0]) == command
    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_session_state_transitions(codec: NrpeProtocol) -> None:
    """Test IDLE -> CONNECTED -> CLOSED around one exchange."""
    stream = FakeStream(codec.encode_response(NrpeStatus.OK, "OK").raw)
    session = NrpeSession(codec, target=TEST_TARGET)
    assert session.state is SessionState.IDLE

    await session.open(_factory(stream))
    assert session.state is SessionState.CONNECTED

    result = await session.exchange(NrpeCommand("check_ping"))

    assert result.ok is True
    assert session.state is SessionState.CLOSED
    assert session.stream is None


@pytest.mark.asyncio
async def test_exchange_is_single_use(codec: NrpeProtocol) -> None:
    """Test a session refuses a second exchange or a second open."""
    stream = FakeStream(codec.encode_response(NrpeStatus.OK, "OK").raw)
    session = NrpeSession(codec)
    await session.open(_factory(stream))
    _ = await session.exchange(NrpeCommand("check_ping"))

    with pytest.raises(SessionStateError):
        await session.exchange(NrpeCommand("check_ping"))
    with pytest.raises(SessionStateError):
        await session.open(_factory(stream))


@pytest.mark.asyncio
async def test_exchange_before_open() -> None:
    """Test exchange requires an open stream."""
    session = NrpeSession()

    with pytest.raises(SessionStateError) as exc_info:
        await session.exchange(NrpeCommand("check_ping"))

    assert exc_info.value.state == "idle"


@pytest.mark.asyncio
async def test_dial_error_propagates() -> None:
    """Test factory failures surface unchanged."""

    async def failing_factory() -> FakeStream:
        raise DialError(TEST_TARGET, "Connection refused")

    with pytest.raises(DialError):
        await run_command(failing_factory, NrpeCommand("check_load"), target=TEST_TARGET)


@pytest.mark.asyncio
async def test_corrupt_response_closes_stream(codec: NrpeProtocol) -> None:
    """Test integrity failures raise and still close the stream."""
    raw = bytearray(codec.encode_response(NrpeStatus.OK, LOAD_OUTPUT).raw)
    raw[100] ^= 0xFF
    stream = FakeStream(bytes(raw))

    with pytest.raises(ChecksumMismatchError):
        await run_command(_factory(stream), NrpeCommand("check_load"), protocol=codec, target=TEST_TARGET)

    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_query_echoed_back_is_type_mismatch(codec: NrpeProtocol) -> None:
    """Test a peer answering with a QUERY packet is rejected."""
    stream = FakeStream(codec.encode_query(NrpeCommand("check_load")).raw)

    with pytest.raises(TypeMismatchError):
        await run_command(_factory(stream), NrpeCommand("check_load"), protocol=codec)


@pytest.mark.asyncio
async def test_frame_io_error_closes_stream() -> None:
    """Test a short read propagates as FrameIOError and closes the stream."""
    stream = FakeStream(recv_error=FrameIOError("recv", "connection closed by peer", 10))

    with pytest.raises(FrameIOError):
        await run_command(_factory(stream), NrpeCommand("check_load"))

    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_exchange_timeout(codec: NrpeProtocol) -> None:
    """Test the overall exchange deadline yields a typed timeout."""
    stream = FakeStream(codec.encode_response(NrpeStatus.OK, "OK").raw, recv_delay=SLOW_PEER_DELAY)

    with pytest.raises(ExchangeTimeoutError) as exc_info:
        await run_command(_factory(stream), NrpeCommand("check_load"), protocol=codec, timeout=EXCHANGE_TIMEOUT)

    assert exc_info.value.operation == "exchange"
    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_command_too_long_sends_nothing() -> None:
    """Test oversize commands fail before any byte is written."""
    stream = FakeStream()

    with pytest.raises(CommandTooLongError):
        await run_command(_factory(stream), NrpeCommand("x" * MAX_PACKETBUFFER_LENGTH))

    assert stream.sent == []
    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_cancellation_closes_stream(codec: NrpeProtocol) -> None:
    """Test cancelling an in-flight exchange still closes the stream."""
    stream = FakeStream(codec.encode_response(NrpeStatus.OK, "OK").raw, recv_delay=SLOW_PEER_DELAY)
    task = asyncio.create_task(run_command(_factory(stream), NrpeCommand("check_load"), protocol=codec))
    await asyncio.sleep(0.01)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert stream.close_calls == 1
