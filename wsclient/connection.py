from __future__ import annotations
import asyncio
import ipaddress
import ssl
from typing import Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets import ConnectionClosed, Frame, Opcode

from wsshared.errors import ConnectError, ConnectionClosed as SessionConnectionClosed, ReadError, SessionError
from wsshared.frames import GRACEFUL_CLOSE_CODES
from wsshared.log import get_logger

from .config import DialOptions

logger = get_logger(__name__)

ControlHandler = Callable[[bytes], None]


class DuplexConnection(websockets.ClientConnection):
    """
    Client connection that reports inbound ping and pong frames.

    The protocol layer answers every ping with a pong on its own; the hooks
    only observe control traffic, they never decide whether to reply.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._ping_handler: Optional[ControlHandler] = None
        self._pong_handler: Optional[ControlHandler] = None

    def set_ping_handler(self, handler: Optional[ControlHandler]) -> None:
        self._ping_handler = handler

    def set_pong_handler(self, handler: Optional[ControlHandler]) -> None:
        self._pong_handler = handler

    def process_event(self, event) -> None:
        if self.response is not None and isinstance(event, Frame):
            handler = None
            if event.opcode is Opcode.PING:
                handler = self._ping_handler
            elif event.opcode is Opcode.PONG:
                handler = self._pong_handler
            if handler is not None:
                try:
                    handler(bytes(event.data))
                except Exception as e:
                    logger.error("Control frame handler failed: %s", e)
        super().process_event(event)


def _is_loopback(url: str) -> bool:
    host = urlsplit(url).hostname or ""
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _ssl_context(options: DialOptions) -> Optional[ssl.SSLContext]:
    if not options.is_secure:
        return None
    context = ssl.create_default_context()
    if options.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def dial(options: DialOptions) -> DuplexConnection:
    """
    Open the WebSocket connection described by ``options``.

    Raises:
        ConnectError: handshake, DNS, TCP or TLS failure
    """
    headers = {}
    if options.auth_header:
        headers["Authorization"] = options.auth_header

    kwargs = {}
    if _is_loopback(options.url):
        # Loopback traffic never goes through a proxy
        kwargs["proxy"] = None
    context = _ssl_context(options)
    if context is not None:
        kwargs["ssl"] = context

    logger.info("Connecting", extra={"url": options.url})
    try:
        return await websockets.connect(
            options.url,
            origin=options.origin or None,
            additional_headers=headers or None,
            subprotocols=list(options.subprotocols) or None,
            compression="deflate" if options.compression else None,
            # The session's heartbeat loop owns pinging
            ping_interval=None,
            create_connection=DuplexConnection,
            **kwargs,
        )
    except (OSError, ValueError, websockets.InvalidHandshake, websockets.InvalidURI, asyncio.TimeoutError) as e:
        raise ConnectError(str(e) or e.__class__.__name__) from e


async def try_close_normally(conn: websockets.ClientConnection, reason: str) -> None:
    """
    Run the close handshake with code 1000.

    A close frame that was already sent, or a connection that is already gone,
    is the expected race at shutdown; such failures are logged and dropped.
    """
    try:
        await conn.close(code=1000, reason=reason)
    except ConnectionClosed:
        logger.debug("close already sent")
    except Exception as e:
        logger.debug("Close handshake failed: %s", e)


def classify_read_error(exc: BaseException) -> SessionError:
    """
    Map a failed frame read to a session error.

    A close frame with an unexpected code, or a socket that dropped without
    any close frame (1006), is a reading error. Everything else ends the
    session as an informational ConnectionClosed.
    """
    if isinstance(exc, ConnectionClosed):
        if exc.rcvd is not None and exc.rcvd.code not in GRACEFUL_CLOSE_CODES:
            return ReadError(exc)
        if exc.rcvd is None and exc.sent is None:
            return ReadError(exc)
    return SessionConnectionClosed(exc)
