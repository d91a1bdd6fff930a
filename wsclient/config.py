from __future__ import annotations
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Pattern, Tuple
from urllib.parse import urlsplit, urlunsplit


HISTORY_ENV = "WSDUPLEX_HISTORY"


@dataclass(frozen=True)
class DialOptions:
    """Everything the transport needs to open the connection."""
    url: str
    origin: str = ""
    auth_header: str = ""
    insecure: bool = False
    subprotocols: Tuple[str, ...] = ()
    compression: bool = False

    @property
    def is_secure(self) -> bool:
        return urlsplit(self.url).scheme == "wss"


@dataclass(frozen=True)
class SessionConfig:
    """
    Display and lifecycle options for one session.

    Built once before the session starts and handed to every loop; nothing
    mutates it afterwards.
    """
    show_timestamps: bool = False
    show_binary_as_text: bool = False
    show_heartbeats: bool = False
    heartbeat_interval: float = 0.0  # seconds, 0 disables the heartbeat loop
    init_message: str = ""
    display_filter: Optional[Pattern[str]] = None
    # None keeps the historical behaviour: sent lines echo only with timestamps
    echo_sent: Optional[bool] = None
    join_timeout: float = 2.0
    heartbeat_send_timeout: float = 1.0

    def __post_init__(self) -> None:
        if self.heartbeat_interval < 0:
            raise ValueError("heartbeat_interval must not be negative")

    @property
    def should_echo_sent(self) -> bool:
        if self.echo_sent is None:
            return self.show_timestamps
        return self.echo_sent


def compile_filter(expr: str) -> Optional[Pattern[str]]:
    """Compile the display filter; an empty expression means no filter."""
    if not expr:
        return None
    try:
        return re.compile(expr)
    except re.error as e:
        raise ValueError(f"compiling regexp '{expr}' error: {e}") from e


def default_origin(url: str) -> str:
    """Derive an HTTP origin from a ws:// or wss:// URL."""
    parts = urlsplit(url)
    scheme = "https" if parts.scheme == "wss" else "http"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def validate_url(url: str) -> str:
    """Return the URL unchanged or raise ValueError if it can't be dialed."""
    if any(ch in url for ch in "\r\n\t"):
        raise ValueError(f"parse {url!r}: invalid control character in URL")
    parts = urlsplit(url)
    if parts.scheme not in ("ws", "wss"):
        raise ValueError(f"unsupported URL scheme {parts.scheme!r}: expected ws or wss")
    if not parts.hostname:
        raise ValueError(f"missing host in URL {url!r}")
    return url


def default_history_file() -> Optional[Path]:
    """History file path from the environment, else ~/.wsduplex_history."""
    override = os.getenv(HISTORY_ENV)
    if override is not None:
        return Path(override) if override else None
    try:
        return Path.home() / ".wsduplex_history"
    except RuntimeError:
        return None
