"""Core types for the NRPE transport session.

This module defines the data structures shared by the socket abstraction,
the session state machine and the scrape orchestrator.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from nrpe_bridge.protocol.packet_types import NrpeStatus


@dataclass(frozen=True)
class CommandResult:
    """Result of one NRPE exchange.

    Attributes:
        status: Check status returned by the agent
        output_text: Payload text up to the first NUL (status line + perfdata)
    """

    status: NrpeStatus
    output_text: str

    @property
    def ok(self) -> bool:
        """Whether the check returned OK."""
        return self.status == NrpeStatus.OK


class SessionState(Enum):
    """Lifecycle of a single-exchange session."""

    IDLE = "idle"
    CONNECTED = "connected"
    SENT = "sent"
    RECEIVED = "received"
    CLOSED = "closed"


class ByteStream(Protocol):
    """Bidirectional, already-negotiated byte stream (plain TCP or TLS)."""

    async def send_all(self, data: bytes) -> None: ...

    async def recv_exactly(self, size: int) -> bytes: ...

    async def close(self) -> None: ...


StreamFactory = Callable[[], Awaitable[ByteStream]]
