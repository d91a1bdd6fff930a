from __future__ import annotations

from enum import Enum
from typing import FrozenSet

from websockets import CloseCode


class FrameType(str, Enum):
    """Frame kinds the session distinguishes."""

    TEXT = "text"
    BINARY = "binary"
    PING = "ping"
    PONG = "pong"
    CLOSE = "close"

    @classmethod
    def of(cls, data: object) -> "FrameType":
        """Classify a payload returned by ``recv()``; raise ValueError if unknown."""
        if isinstance(data, str):
            return cls.TEXT
        if isinstance(data, (bytes, bytearray)):
            return cls.BINARY
        raise ValueError(f"Unknown frame payload: {type(data).__name__}")


class Stream(str, Enum):
    """Display channels; each one is printed in its own colour."""

    SENT = "sent"
    RECEIVED = "received"
    CONTROL = "control"


class Direction(str, Enum):
    OUTBOUND = ">"
    INBOUND = "<"


# Close codes that end a session without it being a reading error
GRACEFUL_CLOSE_CODES: FrozenSet[int] = frozenset({
    CloseCode.GOING_AWAY,
    CloseCode.NORMAL_CLOSURE,
    CloseCode.SERVICE_RESTART,
})
