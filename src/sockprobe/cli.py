"""Command line interface for sockprobe."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from sockprobe.config import Settings, get_settings
from sockprobe.echo import run_echo_server
from sockprobe.probe import Probe
from sockprobe.runtime import ProbeRuntime, UnitOutcome

app = typer.Typer(
    name="sockprobe",
    help="Probe streaming WebSocket endpoints without blocking.",
    add_completion=False,
)


async def _check(settings: Settings, uri: str, message: str, timeout: float, quiet_window: float) -> UnitOutcome:
    async def echo_round_trip(runtime: ProbeRuntime, probe: Probe) -> None:
        actor = await runtime.spawn_connection(uri)
        probe.send(actor, message)
        await probe.expect_message(message, timeout=timeout)
        await probe.expect_no_message(quiet_window)

    async with ProbeRuntime(settings) as runtime:
        [outcome] = await runtime.run_units(echo_round_trip)
    return outcome


@app.command()
def check(
    uri: Optional[str] = typer.Argument(None, help="Endpoint URI; defaults to SOCKPROBE_WEB_SOCKET_URI"),
    message: str = typer.Option("Hello Server", "--message", "-m", help="Text to send and expect back"),
    timeout: float = typer.Option(2.0, "--timeout", help="Seconds to wait for the echo"),
    quiet_window: float = typer.Option(0.5, "--quiet-window", help="Seconds of silence expected afterwards"),
) -> None:
    """Send one message to an echoing endpoint and expect it back exactly once."""
    settings = get_settings()
    target = uri or settings.web_socket_uri
    if not target:
        typer.echo("error: no endpoint URI given and SOCKPROBE_WEB_SOCKET_URI is not set", err=True)
        raise typer.Exit(2)

    outcome = asyncio.run(_check(settings, target, message, timeout, quiet_window))
    if not outcome.passed:
        typer.echo(f"FAILED {target}: {outcome.error}")
        raise typer.Exit(1)
    typer.echo(f"ok {target} ({outcome.elapsed:.3f}s)")


@app.command("echo-server")
def echo_server(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8765, "--port", help="Port to listen on"),
) -> None:
    """Serve a WebSocket echo endpoint until interrupted."""
    get_settings()
    try:
        asyncio.run(run_echo_server(host, port))
    except KeyboardInterrupt:
        typer.echo("stopped")
