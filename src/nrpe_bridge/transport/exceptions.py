"""Custom exception types for transport layer errors.

This module defines the exception hierarchy for transport-related errors,
extending the protocol exceptions so callers can catch either layer with
NrpeProtocolError.
"""

from __future__ import annotations

from nrpe_bridge.protocol.exceptions import NrpeProtocolError


class DialError(NrpeProtocolError):
    """The byte stream to the agent could not be established.

    Raised when:
    - TCP connect times out
    - Connection refused / unreachable host
    - TLS handshake fails

    A dial failure almost always means the whole target is down, so the
    scrape treats it as fatal for the batch.

    Attributes:
        target: host:port that was dialed
        reason: Specific failure reason
    """

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Dial to {target} failed: {reason}")


class FrameIOError(NrpeProtocolError):
    """A full frame could not be written or read.

    Raised when:
    - Connection closed before a full packet arrived
    - Socket error during send/receive
    - Write or read deadline expired (see ExchangeTimeoutError)

    Attributes:
        operation: "send" or "recv"
        reason: Specific failure reason
        transferred: Bytes transferred before the failure
    """

    def __init__(self, operation: str, reason: str, transferred: int = 0):
        self.operation = operation
        self.reason = reason
        self.transferred = transferred
        super().__init__(f"Frame {operation} failed: {reason} ({transferred} bytes transferred)")


class ExchangeTimeoutError(FrameIOError):
    """Read or write deadline expired.

    Attributes:
        timeout_seconds: Deadline that was exceeded
    """

    def __init__(self, operation: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(operation, f"timeout after {timeout_seconds}s")


class SessionStateError(NrpeProtocolError):
    """Session operation attempted in the wrong state.

    Attributes:
        operation: Operation that was attempted
        state: Session state when it was attempted
    """

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} in state {state}")
