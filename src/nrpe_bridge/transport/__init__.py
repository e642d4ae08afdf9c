"""NRPE transport package - streams, the single-exchange session and TLS."""

from nrpe_bridge.transport.exceptions import (
    DialError,
    ExchangeTimeoutError,
    FrameIOError,
    SessionStateError,
)
from nrpe_bridge.transport.session import NrpeSession, run_command
from nrpe_bridge.transport.socket_abstraction import TCPConnection, split_target, tcp_stream_factory
from nrpe_bridge.transport.tls import build_client_context
from nrpe_bridge.transport.types import ByteStream, CommandResult, SessionState, StreamFactory

__all__ = [
    "ByteStream",
    "CommandResult",
    "DialError",
    "ExchangeTimeoutError",
    "FrameIOError",
    "NrpeSession",
    "SessionState",
    "SessionStateError",
    "StreamFactory",
    "TCPConnection",
    "build_client_context",
    "run_command",
    "split_target",
    "tcp_stream_factory",
]
