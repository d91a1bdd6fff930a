from __future__ import annotations
from typing import List


class SessionError(Exception):
    """Base class for every terminal error a session can report."""
    informational = False


class ConnectError(SessionError):
    """Raised when the transport connection cannot be established."""
    pass


class SendError(SessionError):
    """Raised when an outbound text frame cannot be written."""

    def __init__(self, cause: BaseException):
        super().__init__(f"writing error: `{cause}`")
        self.cause = cause


class InitMessageError(SendError):
    """Raised when the configured init message cannot be sent."""
    pass


class HeartbeatError(SessionError):
    """Raised when a heartbeat ping cannot be written."""

    def __init__(self, cause: BaseException):
        super().__init__(f"ping sending error: `{cause}`")
        self.cause = cause


class ReadError(SessionError):
    """Raised when the peer closes with an unexpected close code or drops the socket."""

    def __init__(self, cause: BaseException):
        super().__init__(f"reading error: `{cause}`")
        self.cause = cause


class ConnectionClosed(SessionError):
    """The peer closed the connection gracefully or the socket went away."""
    informational = True

    def __init__(self, cause: BaseException):
        super().__init__(f"connection closed: {cause}")
        self.cause = cause


class UnknownFrameType(SessionError):
    """Raised when a frame is neither text nor binary."""

    def __init__(self, frame: object):
        super().__init__(f"unknown websocket frame type: {type(frame).__name__}")
        self.frame = frame


# ========================================
#           INPUT SENTINELS
# ========================================
"""
Raised by the console front end when no more lines will come. These are the
normal way a human ends a session and are never reported as session errors.
"""

class InputTerminated(Exception):
    pass


class InputInterrupted(InputTerminated):
    pass


class InputEOF(InputTerminated):
    pass


class InputClosed(InputTerminated):
    pass


def is_fatal(errors: List[BaseException]) -> bool:
    """True when at least one error is more than informational."""
    return any(not getattr(err, "informational", False) for err in errors)
