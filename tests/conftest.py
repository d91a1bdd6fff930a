import asyncio
import io
import sys
from pathlib import Path
from typing import Any, List, Optional

import pytest
from rich.console import Console as RichConsole
from websockets import Close
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def closed_by_peer(code: int = 1000, reason: str = "server going down") -> Exception:
    """The exception recv() raises after the peer sent a close frame."""
    close = Close(code, reason)
    if code in (1000, 1001):
        return ConnectionClosedOK(close, close, True)
    return ConnectionClosedError(close, close, True)


def closed_locally(reason: str = "client disconnection") -> Exception:
    return ConnectionClosedOK(None, Close(1000, reason), None)


class DummyConnection:
    """In-memory stand-in for the client connection."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent_messages: List[str] = []
        self.pings: List[bytes] = []
        self.close_calls = 0
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None
        self.send_error: Optional[Exception] = None
        self.ping_error: Optional[Exception] = None
        self.ping_handler = None
        self.pong_handler = None

    def feed(self, item: Any) -> None:
        """Queue a frame payload, or an exception for recv() to raise."""
        self.incoming.put_nowait(item)

    async def recv(self) -> Any:
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            # Keep failing like a closed socket would
            self.incoming.put_nowait(item)
            raise item
        return item

    async def send(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent_messages.append(data)

    async def ping(self, data: bytes) -> "asyncio.Future[float]":
        if self.ping_error is not None:
            raise self.ping_error
        self.pings.append(data)
        waiter = asyncio.get_running_loop().create_future()
        waiter.set_result(0.0)
        return waiter

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        self.close_code = code
        self.close_reason = reason
        self.feed(closed_locally(reason))

    def set_ping_handler(self, handler) -> None:
        self.ping_handler = handler

    def set_pong_handler(self, handler) -> None:
        self.pong_handler = handler


class ScriptedInput:
    """Async line reader fed from a queue; EOFError once ``finish()`` is called."""

    _EOF = object()

    def __init__(self, *lines: str) -> None:
        self.lines: asyncio.Queue = asyncio.Queue()
        for line in lines:
            self.lines.put_nowait(line)

    def type(self, line: str) -> None:
        self.lines.put_nowait(line)

    def finish(self) -> None:
        self.lines.put_nowait(self._EOF)

    async def __call__(self, prompt: str) -> str:
        line = await self.lines.get()
        if line is self._EOF:
            raise EOFError
        return line


def make_output() -> RichConsole:
    return RichConsole(file=io.StringIO(), width=200, soft_wrap=True, color_system=None)


def output_text(console) -> str:
    return console.output.file.getvalue()


@pytest.fixture
def dummy_connection() -> DummyConnection:
    return DummyConnection()


@pytest.fixture
def make_console():
    from wsclient.console import Console

    def factory(*lines: str, history_file=None):
        reader = ScriptedInput(*lines)
        console = Console(prompt="> ", history_file=history_file, output=make_output(), reader=reader)
        return console, reader

    return factory
