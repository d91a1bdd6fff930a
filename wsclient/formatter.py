"""
Formatting of frames for the terminal.

Every function here is pure given the clock and the session config, so the
exact text of each displayed line can be asserted in tests.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Union

from wsshared.frames import Direction, FrameType

from .config import SessionConfig

TIMESTAMP_WIDTH = 19
BYTES_PER_LINE = 16


def prefix(config: SessionConfig, now: Optional[datetime] = None) -> str:
    """UTC timestamp ``YYYYMMDDTHHMMSS.sss`` plus one space, or ``""``."""
    if not config.show_timestamps:
        return ""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S")
    stamp = f"{stamp}.{now.microsecond // 1000:03d}"
    return stamp.ljust(TIMESTAMP_WIDTH, "0")[:TIMESTAMP_WIDTH] + " "


def _printable(byte: int) -> str:
    return chr(byte) if 32 <= byte <= 126 else "."


def hex_dump(data: bytes) -> str:
    """
    Canonical hex+ASCII dump, 16 bytes per line.

    ``00000000  74 65 73 74 20 6d 65 73  73 61 67 65              |test message|``
    """
    lines = []
    for offset in range(0, len(data), BYTES_PER_LINE):
        chunk = data[offset:offset + BYTES_PER_LINE]
        hex_part = ""
        for i in range(BYTES_PER_LINE):
            hex_part += f"{chunk[i]:02x} " if i < len(chunk) else "   "
            if i == 7:
                hex_part += " "
        ascii_part = "".join(_printable(b) for b in chunk)
        lines.append(f"{offset:08x}  {hex_part} |{ascii_part}|")
    return "\n".join(lines)


def format_frame(payload: Union[str, bytes], config: SessionConfig) -> Optional[str]:
    """
    Text to display for an inbound data frame.

    Returns None when the display filter suppresses the frame. Binary frames
    are dumped as hex unless ``show_binary_as_text`` is set.
    """
    kind = FrameType.of(payload)
    if kind is FrameType.TEXT:
        text = payload
    elif config.show_binary_as_text:
        text = bytes(payload).decode("utf-8", errors="replace")
    else:
        text = "\n" + hex_dump(bytes(payload))

    if config.display_filter is not None and not config.display_filter.search(text):
        return None
    return text


def sent_line(text: str, config: SessionConfig, now: Optional[datetime] = None) -> str:
    return f"{prefix(config, now)}{Direction.OUTBOUND.value} {text}"


def received_line(text: str, config: SessionConfig, now: Optional[datetime] = None) -> str:
    return f"{prefix(config, now)}{Direction.INBOUND.value} {text}"


def control_payload(data: bytes) -> str:
    """Show a ping/pong payload as text when it is printable, else as hex."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return data.hex()
    return text if text.isprintable() else data.hex()


def heartbeat_line(
    direction: Direction,
    kind: FrameType,
    payload: bytes,
    config: SessionConfig,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Display line for a ping/pong, or None when heartbeats aren't shown."""
    if not config.show_heartbeats:
        return None
    return f"{prefix(config, now)}{direction.value} {kind.value}: {control_payload(payload)}"
