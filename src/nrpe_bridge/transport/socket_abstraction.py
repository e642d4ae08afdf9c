"""Asyncio TCP socket abstraction with deadlines and instrumentation."""

from __future__ import annotations

import asyncio
import logging
import ssl
import time
from collections.abc import Awaitable
from typing import TypeVar

from nrpe_bridge.transport.exceptions import DialError, ExchangeTimeoutError, FrameIOError
from nrpe_bridge.transport.types import StreamFactory

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class TCPConnection:
    """One agent connection, plaintext or TLS, with a deadline on every step.

    Every failure surfaces as a transport exception: dialing raises DialError,
    frame transfer raises FrameIOError (ExchangeTimeoutError when a deadline
    expires). The connection is meant to carry a single exchange.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 5.0,
        io_timeout: float = 10.0,
        ssl_context: ssl.SSLContext | None = None,
    ):
        """
        Args:
            host: Agent host
            port: Agent port
            connect_timeout: Deadline for TCP connect plus TLS handshake
            io_timeout: Deadline for each frame write or read
            ssl_context: Client TLS context, None for plaintext
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.ssl_context = ssl_context
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._connected = False

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _context(self, **fields: object) -> dict[str, object]:
        return {"host": self.host, "port": self.port, **fields}

    async def connect(self) -> None:
        """
        Dial the agent.

        Raises:
            DialError: On timeout, refusal, unreachable host or TLS failure
        """
        start = time.perf_counter()
        logger.debug(
            "Dialing %s (tls: %s)",
            self.target,
            self.ssl_context is not None,
            extra=self._context(timeout=self.connect_timeout),
        )
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, ssl=self.ssl_context),
                timeout=self.connect_timeout,
            )
        except TimeoutError as e:
            reason = f"timeout after {self.connect_timeout}s"
            logger.warning("Dial %s failed: %s", self.target, reason, extra=self._context(elapsed_ms=_elapsed_ms(start)))
            raise DialError(self.target, reason) from e
        except OSError as e:
            # Covers refusals, DNS failures and ssl.SSLError
            logger.warning("Dial %s failed: %s", self.target, e, extra=self._context(elapsed_ms=_elapsed_ms(start)))
            raise DialError(self.target, _describe(e)) from e

        self._connected = True
        logger.debug("Connected to %s", self.target, extra=self._context(elapsed_ms=_elapsed_ms(start)))

    async def _within_deadline(self, operation: str, step: Awaitable[_T]) -> _T:
        """Await one frame transfer step, mapping socket failures to FrameIOError."""
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(step, timeout=self.io_timeout)
        except TimeoutError as e:
            logger.warning(
                "Frame %s to %s timed out",
                operation,
                self.target,
                extra=self._context(elapsed_ms=_elapsed_ms(start)),
            )
            raise ExchangeTimeoutError(operation, self.io_timeout) from e
        except OSError as e:
            logger.warning(
                "Frame %s to %s failed: %s",
                operation,
                self.target,
                e,
                extra=self._context(elapsed_ms=_elapsed_ms(start), error_type=type(e).__name__),
            )
            raise FrameIOError(operation, _describe(e)) from e

    async def send_all(self, data: bytes) -> None:
        """
        Write one whole frame.

        Raises:
            FrameIOError: If not connected or the socket fails
            ExchangeTimeoutError: If the write deadline expires
        """
        if not self._connected or self.writer is None:
            raise FrameIOError("send", "not connected")

        self.writer.write(data)
        await self._within_deadline("send", self.writer.drain())
        logger.debug("Sent %d bytes to %s", len(data), self.target)

    async def recv_exactly(self, size: int) -> bytes:
        """
        Read exactly ``size`` bytes; a shorter stream is an error.

        Raises:
            FrameIOError: If the peer closes early or the socket fails
            ExchangeTimeoutError: If the read deadline expires
        """
        if not self._connected or self.reader is None:
            raise FrameIOError("recv", "not connected")

        try:
            data = await self._within_deadline("recv", self.reader.readexactly(size))
        except asyncio.IncompleteReadError as e:
            self._connected = False
            logger.warning(
                "%s closed the connection after %d of %d bytes",
                self.target,
                len(e.partial),
                size,
                extra=self._context(),
            )
            raise FrameIOError("recv", "connection closed by peer", len(e.partial)) from e

        logger.debug("Received %d bytes from %s", len(data), self.target)
        return data

    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        writer, self.writer, self.reader = self.writer, None, None
        self._connected = False
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ConnectionError) as e:
            logger.debug("Ignoring error while closing %s: %s", self.target, e, extra=self._context())

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.target}, {status})"


def tcp_stream_factory(
    host: str,
    port: int,
    *,
    connect_timeout: float = 5.0,
    io_timeout: float = 10.0,
    ssl_context: ssl.SSLContext | None = None,
) -> StreamFactory:
    """Build a factory that dials a fresh connection on every call."""

    async def open_stream() -> TCPConnection:
        connection = TCPConnection(
            host,
            port,
            connect_timeout=connect_timeout,
            io_timeout=io_timeout,
            ssl_context=ssl_context,
        )
        await connection.connect()
        return connection

    return open_stream


def split_target(target: str, default_port: int = 5666) -> tuple[str, int]:
    """Split ``host:port`` (IPv6 as ``[addr]:port``) into its parts.

    Raises:
        ValueError: If the host is missing or the port is not a valid number
    """
    host, sep, port = target.rpartition(":")
    if not sep or "]" in port:
        host, port = target, ""
    host = host.strip("[]")
    if not host:
        raise ValueError(f"Missing host in target {target!r}")
    if not port:
        return host, default_port
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"Port out of range in target {target!r}")
    return host, port_number
