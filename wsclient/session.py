#!/usr/bin/env python3
"""
Interactive duplex session.

One Session couples a WebSocket connection with a console. Three loops run as
asyncio tasks next to the orchestrating coroutine:

- console relay: typed lines -> outbound text frames
- socket relay: inbound frames -> formatted display lines
- heartbeat: periodic ping (only when an interval is configured)

All of them watch one cancellation event. The first loop to finish, an
interrupt signal, or an explicit ``cancel()`` sets it; the orchestrator then
closes the connection and the console, joins every loop and returns the
errors the loops reported.
"""

from __future__ import annotations
import asyncio
import signal
from contextlib import contextmanager, suppress
from typing import Coroutine, Iterator, List, Optional

from wsshared.errors import (
    ConnectError,
    HeartbeatError,
    InitMessageError,
    InputTerminated,
    SendError,
    UnknownFrameType,
)
from wsshared.frames import Direction, FrameType, Stream
from wsshared.log import get_logger

from .config import DialOptions, SessionConfig
from .connection import classify_read_error, dial, try_close_normally
from .console import Console
from .formatter import format_frame, heartbeat_line, received_line, sent_line

logger = get_logger(__name__)

CLOSE_REASON = "client disconnection"


class Session:
    """Coordinates the relay loops of one connection until it is cancelled."""

    def __init__(
        self,
        connection,
        console: Console,
        config: SessionConfig,
        *,
        handle_signals: bool = True,
    ) -> None:
        self.connection = connection
        self.console = console
        self.config = config
        self.handle_signals = handle_signals
        self._cancelled = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self._errors: List[BaseException] = []
        self._connection_closed = False
        self._ping_seq = 0

    # ========================================
    #           CANCELLATION
    # ========================================

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Signal every loop to stop. Calling it again does nothing."""
        if self._cancelled.is_set():
            return
        logger.info("Session cancelled")
        self._cancelled.set()

    def interrupt(self, signame: str = "SIGINT") -> None:
        """Effect of a termination signal: release the console, then cancel."""
        self.console.print_line(f"{signame} signal received, exiting...", Stream.CONTROL)
        self.console.close()
        self.cancel()

    def _fail(self, error: BaseException) -> Optional[BaseException]:
        """Outcome of a failed loop; failures after cancellation are reactions, not causes."""
        if self._cancelled.is_set():
            logger.debug("Dropping error raised during shutdown: %s", error)
            return None
        return error

    @property
    def errors(self) -> List[BaseException]:
        return list(self._errors)

    # ========================================
    #           OUTPUT
    # ========================================

    def _show_control(self, direction: Direction, kind: FrameType, payload: bytes) -> None:
        line = heartbeat_line(direction, kind, payload, self.config)
        if line is not None:
            self.console.print_line(line, Stream.CONTROL)

    def _on_ping(self, payload: bytes) -> None:
        # The protocol layer has already queued the matching pong
        self._show_control(Direction.INBOUND, FrameType.PING, payload)
        self._show_control(Direction.OUTBOUND, FrameType.PONG, payload)

    def _on_pong(self, payload: bytes) -> None:
        self._show_control(Direction.INBOUND, FrameType.PONG, payload)

    def install_control_handlers(self) -> None:
        if not self.config.show_heartbeats:
            return
        self.connection.set_ping_handler(self._on_ping)
        self.connection.set_pong_handler(self._on_pong)

    async def send_message(self, text: str) -> None:
        """Send one text frame and echo it when configured."""
        try:
            await self.connection.send(text)
        except Exception as e:
            raise SendError(e) from e
        if self.config.should_echo_sent:
            self.console.print_line(sent_line(text, self.config), Stream.SENT)

    # ========================================
    #           LOOPS
    # ========================================

    async def read_console(self) -> Optional[BaseException]:
        """Forward typed lines until input ends or a send fails."""
        try:
            while True:
                try:
                    line = await self.console.readline()
                except InputTerminated:
                    logger.debug("Console input terminated", extra={"loop_name": "console"})
                    return None
                except Exception as e:
                    return self._fail(e)
                try:
                    await self.send_message(line)
                except SendError as e:
                    return self._fail(e)
        finally:
            self.cancel()

    async def read_websocket(self) -> Optional[BaseException]:
        """Display inbound frames until the connection ends."""
        try:
            while True:
                try:
                    data = await self.connection.recv()
                except Exception as e:
                    return self._fail(classify_read_error(e))
                try:
                    text = format_frame(data, self.config)
                except ValueError:
                    return self._fail(UnknownFrameType(data))
                if text is None:
                    continue
                self.console.print_line(received_line(text, self.config), Stream.RECEIVED)
        finally:
            self.console.close()
            self.cancel()

    async def heartbeat(self) -> Optional[BaseException]:
        """Ping every ``heartbeat_interval`` seconds until cancelled or a ping fails."""
        interval = self.config.heartbeat_interval
        logger.debug("Heartbeat every %.3fs", interval, extra={"loop_name": "heartbeat"})
        try:
            while True:
                try:
                    await asyncio.wait_for(self._cancelled.wait(), timeout=interval)
                    return None
                except asyncio.TimeoutError:
                    pass
                self._ping_seq += 1
                payload = str(self._ping_seq).encode()
                # Shown before the write; the pong may be handled while the write drains
                self._show_control(Direction.OUTBOUND, FrameType.PING, payload)
                try:
                    await asyncio.wait_for(
                        self.connection.ping(payload),
                        timeout=self.config.heartbeat_send_timeout,
                    )
                except Exception as e:
                    return self._fail(HeartbeatError(e))
        finally:
            self.cancel()

    # ========================================
    #           ORCHESTRATION
    # ========================================

    def _spawn(self, name: str, coro: Coroutine) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.append(task)

    async def run(self) -> List[BaseException]:
        """
        Drive the session to completion.

        Returns:
            Every error reported by a loop; empty when the session ended by
            user interrupt, end of input or an explicit cancel.
        """
        with self._signal_bridge():
            try:
                self.install_control_handlers()

                if self.config.init_message:
                    try:
                        await self.send_message(self.config.init_message)
                    except SendError as e:
                        self._errors = [InitMessageError(e.cause)]
                        return self.errors

                self._spawn("console", self.read_console())
                self._spawn("websocket", self.read_websocket())
                if self.config.heartbeat_interval > 0:
                    self._spawn("heartbeat", self.heartbeat())

                await self._cancelled.wait()
            finally:
                self.cancel()
                await self._shutdown()
        return self.errors

    async def _shutdown(self) -> None:
        if not self._connection_closed:
            self._connection_closed = True
            await try_close_normally(self.connection, CLOSE_REASON)
        self.console.close()
        await self._join()

    async def _join(self) -> None:
        if not self._tasks:
            return
        _, pending = await asyncio.wait(self._tasks, timeout=self.config.join_timeout)
        for task in pending:
            logger.warning("Loop %s did not stop in time; cancelling", task.get_name())
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        errors = []
        for task in self._tasks:
            if task.cancelled():
                continue
            outcome = task.exception() or task.result()
            if outcome is not None:
                errors.append(outcome)
        self._errors = errors

    @contextmanager
    def _signal_bridge(self) -> Iterator[None]:
        """Turn SIGINT/SIGTERM into ``interrupt()`` for the lifetime of the run."""
        installed = []
        if self.handle_signals:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, self.interrupt, sig.name)
                except (NotImplementedError, RuntimeError, ValueError) as e:
                    logger.debug("Cannot handle %s here: %s", sig.name, e)
                    continue
                installed.append(sig)
        try:
            yield
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)


async def connect(
    options: DialOptions,
    config: SessionConfig,
    console: Console,
    *,
    handle_signals: bool = True,
) -> List[BaseException]:
    """
    Dial ``options.url`` and run an interactive session on it.

    Returns:
        The session's error list. A failed dial yields exactly one ConnectError.
    """
    try:
        conn = await dial(options)
    except ConnectError as e:
        logger.info("Connect failed: %s", e, extra={"url": options.url})
        console.close()
        return [e]

    session = Session(conn, console, config, handle_signals=handle_signals)
    return await session.run()
