"""
Interactive front end: line input on one side, a rich output sink on the other.

Lines come from a blocking reader (``input`` by default) pumped by a daemon
thread, or from an async reader awaited directly. Either way ``readline()``
is a coroutine that can be abandoned by ``close()``.
"""

from __future__ import annotations
import asyncio
import inspect
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from rich.console import Console as RichConsole
from rich.text import Text

from wsshared.errors import InputClosed, InputEOF, InputInterrupted
from wsshared.frames import Stream
from wsshared.log import get_logger

try:
    import readline
except ImportError:  # Windows has no GNU readline; run without history
    readline = None

logger = get_logger(__name__)

Reader = Union[Callable[[str], str], Callable[[str], Awaitable[str]]]

STREAM_STYLES: Dict[Stream, str] = {
    Stream.SENT: "blue",
    Stream.RECEIVED: "green",
    Stream.CONTROL: "red",
}


class Console:
    """Line-oriented terminal front end used by the session."""

    def __init__(
        self,
        prompt: str = "> ",
        history_file: Optional[Path] = None,
        output: Optional[RichConsole] = None,
        reader: Optional[Reader] = None,
    ) -> None:
        self.prompt = prompt
        self.history_file = history_file
        self.output = output or RichConsole(soft_wrap=True)
        self._reader: Reader = reader or input
        self._async_reader = inspect.iscoroutinefunction(self._reader) or inspect.iscoroutinefunction(
            getattr(self._reader, "__call__", None)
        )
        self._closed = asyncio.Event()
        self._lines: Optional[asyncio.Queue[Any]] = None
        self._pump: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        if readline is not None and reader is None:
            self._load_history()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def readline(self) -> str:
        """
        Wait for the next line.

        Raises:
            InputEOF: end of input (^D)
            InputInterrupted: ^C reached the reader
            InputClosed: close() was called, before or during the wait
            Exception: any other failure of the reader, unchanged
        """
        if self._closed.is_set():
            raise InputClosed("input closed")

        read = asyncio.ensure_future(self._next_line())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait({read, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
        if read not in done:
            read.cancel()
            raise InputClosed("input closed")

        line = read.result()
        self._remember(line)
        return line

    async def _next_line(self) -> str:
        if self._async_reader:
            try:
                return await self._reader(self.prompt)
            except EOFError:
                raise InputEOF("end of input")
            except KeyboardInterrupt:
                raise InputInterrupted("interrupted")

        if self._lines is None:
            self._lines = asyncio.Queue()
            self._pump = threading.Thread(
                target=self._pump_lines,
                args=(asyncio.get_running_loop(), self._lines),
                name="console-reader",
                daemon=True,
            )
            self._pump.start()

        item = await self._lines.get()
        if isinstance(item, Exception):
            # Keep the failure queued so later reads see it as well
            self._lines.put_nowait(item)
            raise item
        return item

    def _pump_lines(self, loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[Any]") -> None:
        """Blocking reader loop; runs on the console-reader thread."""
        while not self._stopping.is_set():
            try:
                item: Any = self._reader(self.prompt)
            except EOFError:
                item = InputEOF("end of input")
            except KeyboardInterrupt:
                item = InputInterrupted("interrupted")
            except Exception as e:
                logger.debug("Console reader failed: %s", e)
                item = e
            try:
                loop.call_soon_threadsafe(lines.put_nowait, item)
            except RuntimeError:
                # Event loop already closed; nobody is listening any more
                return
            if isinstance(item, Exception):
                return

    def close(self) -> None:
        """Stop delivering lines. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._stopping.set()
        logger.debug("Console input closed")

    def print_line(self, line: str, stream: Stream) -> None:
        """Write one complete line to the output sink in the stream's colour."""
        self.output.print(Text(line, style=STREAM_STYLES[stream]), soft_wrap=True)

    # ========================================
    #           HISTORY
    # ========================================

    def _load_history(self) -> None:
        if self.history_file is None or not self.history_file.exists():
            return
        try:
            readline.read_history_file(str(self.history_file))
        except OSError as e:
            logger.warning("Could not read history file %s: %s", self.history_file, e)

    def _remember(self, line: str) -> None:
        """Append one line to the history file."""
        if self.history_file is None or not line:
            return
        try:
            with self.history_file.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning("Could not append to history file %s: %s", self.history_file, e)
