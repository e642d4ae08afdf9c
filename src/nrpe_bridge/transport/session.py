"""Single-exchange NRPE session state machine.

A session drives exactly one request/response exchange over one stream:

    IDLE -> CONNECTED -> SENT -> RECEIVED -> CLOSED

The remote agent serves one command per connection, so the stream is always
closed once the exchange finishes, whatever the outcome. Nothing is retried
here; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time

from nrpe_bridge.metrics import registry
from nrpe_bridge.protocol.exceptions import PacketDecodeError
from nrpe_bridge.protocol.nrpe_protocol import NrpeProtocol
from nrpe_bridge.protocol.packet_types import NRPE_PACKET_VERSION_2, RESPONSE_PACKET, NrpeCommand
from nrpe_bridge.transport.exceptions import ExchangeTimeoutError, SessionStateError
from nrpe_bridge.transport.types import ByteStream, CommandResult, SessionState, StreamFactory

logger = logging.getLogger(__name__)


class NrpeSession:
    """One NRPE exchange over one already-negotiated stream."""

    def __init__(self, protocol: NrpeProtocol | None = None, target: str = "unknown"):
        self.protocol = protocol if protocol is not None else NrpeProtocol()
        self.target = target
        self.state = SessionState.IDLE
        self.stream: ByteStream | None = None

    async def open(self, stream_factory: StreamFactory) -> ByteStream:
        """Obtain the stream from the caller-supplied factory.

        Raises:
            DialError: Propagated from the factory
            SessionStateError: If the session was already used
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError("open", self.state.value)
        self.stream = await stream_factory()
        self.state = SessionState.CONNECTED
        return self.stream

    async def exchange(
        self,
        command: NrpeCommand,
        version: int = NRPE_PACKET_VERSION_2,
        timeout: float | None = None,
    ) -> CommandResult:
        """Send one query and read one response, then close the stream.

        The query is encoded before any I/O, so CommandTooLongError surfaces
        without touching the network. ``timeout`` bounds the whole write+read;
        the stream's own per-operation deadlines still apply inside it.

        Args:
            command: Command to run on the agent
            version: Protocol version
            timeout: Overall exchange deadline in seconds (None for no extra deadline)

        Returns:
            CommandResult decoded from the RESPONSE packet

        Raises:
            CommandTooLongError: If the command does not fit in a packet
            FrameIOError: On short write/read or socket failure
            ExchangeTimeoutError: If a deadline expires
            PacketDecodeError: On any integrity failure of the response
            SessionStateError: If called outside the CONNECTED state

        """
        if self.state is not SessionState.CONNECTED or self.stream is None:
            raise SessionStateError("exchange", self.state.value)

        start_time = time.perf_counter()
        try:
            query = self.protocol.encode_query(command, version)
            if timeout is not None:
                try:
                    async with asyncio.timeout(timeout):
                        response = await self._send_and_receive(query.raw, version)
                except TimeoutError as e:
                    raise ExchangeTimeoutError("exchange", timeout) from e
            else:
                response = await self._send_and_receive(query.raw, version)

            try:
                packet = self.protocol.decode_packet(response, RESPONSE_PACKET)
            except PacketDecodeError as e:
                registry.record_decode_error(self.target, e.reason)
                raise
        except asyncio.CancelledError:
            registry.record_exchange(self.target, "cancelled")
            raise
        except Exception:
            registry.record_exchange(self.target, "failure")
            raise
        finally:
            await self.close()

        elapsed = time.perf_counter() - start_time
        registry.record_exchange(self.target, "success")
        registry.record_exchange_latency(self.target, elapsed)

        result = CommandResult(status=packet.status, output_text=packet.text)
        logger.debug(
            "Exchange with %s finished: command=%s, status=%s, elapsed_ms=%.1f",
            self.target,
            command.name,
            result.status.name,
            elapsed * 1000,
            extra={"target": self.target, "command": command.name, "status": int(result.status)},
        )
        return result

    async def _send_and_receive(self, frame: bytes, version: int) -> bytes:
        assert self.stream is not None
        await self.stream.send_all(frame)
        self.state = SessionState.SENT
        response = await self.stream.recv_exactly(self.protocol.expected_length(version))
        self.state = SessionState.RECEIVED
        return response

    async def close(self) -> None:
        """Close the stream (idempotent)."""
        if self.state is SessionState.CLOSED:
            return
        stream, self.stream = self.stream, None
        self.state = SessionState.CLOSED
        if stream is not None:
            await stream.close()


async def run_command(
    stream_factory: StreamFactory,
    command: NrpeCommand,
    *,
    protocol: NrpeProtocol | None = None,
    version: int = NRPE_PACKET_VERSION_2,
    timeout: float | None = None,
    target: str = "unknown",
) -> CommandResult:
    """Dial, run one command and close.

    Raises:
        DialError: If the stream cannot be opened
        Anything NrpeSession.exchange raises
    """
    session = NrpeSession(protocol, target=target)
    await session.open(stream_factory)
    return await session.exchange(command, version=version, timeout=timeout)
