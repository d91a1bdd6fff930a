#!/usr/bin/env python3
"""
Demo echo/broadcast server.

A live peer for trying the client out. Every text message must be a JSON
object ``{"type": ..., "payload": ...}``:

- ``echo``       the message is sent back unchanged
- ``broadcast``  the message goes to every connected client, then the sender
                 gets ``{"type": "broadcastResult", "payload": ..., "listenerCount": N}``
- other types and unparsable messages get an ``error`` reply
"""

from __future__ import annotations
import asyncio
import json
import signal
import sys
from contextlib import suppress
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import websockets
from websockets import ConnectionClosed

from wsshared.frames import GRACEFUL_CLOSE_CODES
from wsshared.log import configure_root_logging, get_logger

logger = get_logger(__name__)

DEFAULT_URL = "ws://localhost:8080/ws"


@dataclass
class EchoMessage:
    type: str = ""
    payload: str = ""
    listener_count: Optional[int] = None

    @classmethod
    def from_json(cls, raw: str) -> "EchoMessage":
        """Parse one inbound message; raise ValueError when it isn't a valid object."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        msg_type = data.get("type", "")
        payload = data.get("payload", "")
        count = data.get("listenerCount")
        if not isinstance(msg_type, str) or not isinstance(payload, str):
            raise ValueError("'type' and 'payload' must be strings")
        if count is not None and not isinstance(count, int):
            raise ValueError("'listenerCount' must be an integer")
        return cls(type=msg_type, payload=payload, listener_count=count)

    def to_dict(self) -> Dict[str, Any]:
        """Empty fields are left out of the wire form."""
        result: Dict[str, Any] = {}
        if self.type:
            result["type"] = self.type
        if self.payload:
            result["payload"] = self.payload
        if self.listener_count is not None:
            result["listenerCount"] = self.listener_count
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


class EchoServer:

    def __init__(self, host: str = "localhost", port: int = 8080, path: str = "/ws"):
        self.host = host
        self.port = port
        self.path = path if path.startswith("/") else "/" + path
        self._server: Optional[websockets.Server] = None

    @property
    def bound_port(self) -> int:
        """Actual listening port (differs from ``port`` when it was 0)."""
        if self._server is None:
            raise RuntimeError("server not started")
        return next(iter(self._server.sockets)).getsockname()[1]

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.bound_port}{self.path}"

    @property
    def connections(self) -> List[websockets.ServerConnection]:
        if self._server is None:
            return []
        return list(self._server.connections)

    def _check_path(self, connection: websockets.ServerConnection, request):
        if request.path != self.path:
            return connection.respond(HTTPStatus.NOT_FOUND, "not found\n")
        return None

    async def start(self) -> None:
        """Start listening"""
        self._server = await websockets.serve(
            self.handle_connection,
            self.host,
            self.port,
            process_request=self._check_path,
        )
        logger.info(f"Echo server listening on {self.url}")

    async def close(self) -> None:
        """Stop listening; open connections are closed with 1001 (going away)."""
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        logger.info("Echo server stopped")

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Future()  # Run until cancelled
        finally:
            await self.close()

    async def handle_connection(self, websocket: websockets.ServerConnection) -> None:
        addr = websocket.remote_address
        try:
            async for message in websocket:
                logger.info(f"echoHandler for {addr}: handle message: {message!r}")
                await self.process_message(websocket, message)
        except ConnectionClosed as e:
            if e.rcvd is not None and e.rcvd.code not in GRACEFUL_CLOSE_CODES:
                logger.warning(f"echoHandler for {addr}: websocket reading error: {e}")
            else:
                logger.info(f"echoHandler for {addr}: {e}")

    async def process_message(self, websocket: websockets.ServerConnection, message) -> None:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        try:
            msg = EchoMessage.from_json(message)
        except ValueError as e:
            await websocket.send(EchoMessage("error", f"message parsing error: {e}").to_json())
            return

        if msg.type == "echo":
            await websocket.send(msg.to_json())
        elif msg.type == "broadcast":
            listeners = self.connections
            websockets.broadcast(listeners, msg.to_json())
            await websocket.send(EchoMessage("broadcastResult", msg.payload, len(listeners)).to_json())
        else:
            await websocket.send(EchoMessage("error", f"unknown type: {msg.type}").to_json())


def server_from_url(raw: str) -> EchoServer:
    parts = urlsplit(raw)
    if not parts.hostname:
        raise ValueError(f"url parsing error: missing host in {raw!r}")
    return EchoServer(host=parts.hostname, port=parts.port or 8080, path=parts.path or "/")


async def main(url: str = DEFAULT_URL) -> None:
    """Run the echo server until SIGINT/SIGTERM/SIGHUP"""
    configure_root_logging("INFO")
    server = server_from_url(url)
    task = asyncio.create_task(server.serve_forever())

    loop = asyncio.get_running_loop()
    for name in ("SIGINT", "SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, task.cancel)

    print(f"starting echo server on {urlsplit(url).netloc}...")
    with suppress(asyncio.CancelledError):
        await task


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point: ``wsduplex-echo [URL]``."""
    argv = sys.argv[1:] if argv is None else argv
    url = argv[0] if argv else DEFAULT_URL
    try:
        server_from_url(url)
    except ValueError as e:
        print(e)
        sys.exit(1)
    asyncio.run(main(url))


if __name__ == "__main__":
    run()
