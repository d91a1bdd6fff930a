#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import os
import re
from typing import List, Optional

import typer
from rich.console import Console as RichConsole

from wsshared.errors import is_fatal
from wsshared.log import configure_root_logging, get_logger, LOG_LEVEL_ENV

from . import __version__
from .config import DialOptions, SessionConfig, compile_filter, default_history_file, default_origin, validate_url
from .console import Console
from .session import connect

app = typer.Typer(help=f"wsduplex is an interactive websocket client v.{__version__}", add_completion=False)
stderr = RichConsole(stderr=True, soft_wrap=True, highlight=False)
logger = get_logger(__name__)


_DURATION_UNITS = {"ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Durations like ``20s``, ``500ms``, ``1m30s`` or bare seconds, as float seconds."""
    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or not text:
        raise ValueError(f"invalid duration {value!r}")
    return total


def _duration_option(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


@app.command()
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Argument(None, help="WebSocket URL, ws:// or wss://"),
    origin: str = typer.Option("", "--origin", "-o", help="websocket origin (default value is formed from URL)"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="skip ssl certificate check"),
    subprotocol: Optional[List[str]] = typer.Option(None, "--subprotocol", "-s", help="sec-websocket-protocol field (repeatable)"),
    auth: str = typer.Option("", "--auth", "-a", help="auth header value, like 'Bearer $TOKEN'"),
    timestamp: bool = typer.Option(False, "--timestamp", "-t", help="print timestamps for sent and received messages"),
    bin2text: bool = typer.Option(False, "--bin2text", "-b", help="print binary message as text"),
    ping_pong: bool = typer.Option(False, "--pingPong", "-p", help="print out ping/pong messages"),
    interval: str = typer.Option("0", "--interval", "-i", callback=_duration_option, help="send ping each interval (ex: 20s)"),
    init: str = typer.Option("", "--init", "-m", help="connection init message"),
    compression: bool = typer.Option(False, "--compression", "-c", help="enable compression"),
    filter_expr: str = typer.Option("", "--filter", "-f", help="only messages that match regexp will be printed"),
    echo: bool = typer.Option(False, "--echo", "-e", help="echo sent messages even without --timestamp"),
    version: bool = typer.Option(False, "--version", "-v", help="print version"),
):
    """
    Connect to URL and relay typed lines until either side closes.

    Exits 1 when the session reported an error other than a graceful close by
    the server (1000, 1001, 1012), and 0 otherwise.
    """
    if version:
        typer.echo(f"wsduplex v.{__version__}")
        raise typer.Exit(0)

    if url is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(1)

    try:
        validate_url(url)
        display_filter = compile_filter(filter_expr)
    except ValueError as e:
        stderr.print(str(e), markup=False)
        raise typer.Exit(1)

    configure_root_logging(_root_log_level())

    options = DialOptions(
        url=url,
        origin=origin or default_origin(url),
        auth_header=auth,
        insecure=insecure,
        subprotocols=tuple(s for s in (subprotocol or []) if s),
        compression=compression,
    )
    config = SessionConfig(
        show_timestamps=timestamp,
        show_binary_as_text=bin2text,
        show_heartbeats=ping_pong,
        heartbeat_interval=float(interval),
        init_message=init,
        display_filter=display_filter,
        echo_sent=True if echo else None,
    )
    console = Console(prompt="> ", history_file=default_history_file())

    errors = asyncio.run(connect(options, config, console))
    logger.debug("Session ended with %d error(s)", len(errors))
    for err in errors:
        stderr.print(str(err), markup=False)
    raise typer.Exit(1 if is_fatal(errors) else 0)


def _root_log_level() -> str:
    return os.getenv(LOG_LEVEL_ENV, "WARNING") or "WARNING"


def run() -> None:
    """Console script entry point."""
    app(prog_name="wsduplex")


if __name__ == "__main__":
    run()
