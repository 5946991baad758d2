# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Main llmanager CLI.

Usage:
  llmanager status
  llmanager start | stop
  llmanager list
  llmanager ps
  llmanager load <model> [--keep-alive 10m]
  llmanager unload <model>
  llmanager rm <model>
  llmanager watch [--interval 15]
  llmanager version
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="llmanager",
    help="Start, stop and inspect a local Ollama daemon and its models.",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
    log_file: Path = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    from llmanager.logging_config import setup_logging

    setup_logging(verbose=verbose, log_file=log_file)


def _manager(**overrides):
    """Builds a ModelManager, optionally with a customized configuration."""
    from llmanager.config import ManagerConfig
    from llmanager.manager import ModelManager

    cfg = ManagerConfig(**overrides) if overrides else None
    return ModelManager(cfg=cfg)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {error}")
    raise typer.Exit(1)


def _models_table(models) -> Table:
    table = Table(title="Local Models")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Loaded Size", justify="right")
    table.add_column("Quantization")
    table.add_column("Until")
    table.add_column("Modified")
    table.add_column("Status")

    for m in models:
        table.add_row(
            m.name,
            m.identifier,
            m.size_packed,
            m.size_unpacked,
            m.processor,
            m.until,
            m.modified,
            "[green]running[/]" if m.is_running else "[dim]stopped[/]",
        )
    return table


def _render(snapshot):
    from rich.console import Group
    from rich.text import Text

    header = Text()
    if snapshot.process.running:
        header.append(f"● running (PID {snapshot.process.pid})", style="green")
    else:
        header.append("○ stopped", style="red")
    if snapshot.version:
        header.append(f"  v{snapshot.version}", style="dim")
    if snapshot.last_refresh:
        header.append(f"  refreshed {snapshot.last_refresh:%H:%M:%S}", style="dim")

    parts = [header, _models_table(snapshot.models)]
    if snapshot.error:
        parts.append(Text(snapshot.error, style="yellow"))
    return Group(*parts)


@app.command()
def status():
    """Shows whether the daemon is running."""
    from llmanager.exceptions import LLManagerError

    async def _status():
        async with _manager() as manager:
            handle = await manager.controller.check_status()
            version = None
            if handle.running:
                version = await manager.refresh_version(raise_errors=False)
            return handle, version

    try:
        handle, version = asyncio.run(_status())
    except LLManagerError as e:
        _fail(e)

    if handle.running:
        console.print(f"[green]●[/] Running with PID [bold]{handle.pid}[/]")
        console.print(f"  Version: {version or 'N/A'}")
    else:
        console.print("[red]○[/] Not running")


@app.command()
def start():
    """Starts the daemon in the background."""
    from llmanager.exceptions import LLManagerError

    async def _start():
        async with _manager() as manager:
            handle = await manager.controller.check_status()
            if handle.running:
                return handle, False
            return await manager.start_service(), True

    console.print("[cyan]Starting[/] daemon...")
    try:
        handle, started = asyncio.run(_start())
    except LLManagerError as e:
        _fail(e)

    if started:
        console.print(f"[green]Started[/] with PID {handle.pid}")
    else:
        console.print(f"[yellow]Already running[/] with PID {handle.pid}")


@app.command()
def stop():
    """Stops the daemon (SIGTERM)."""
    from llmanager.exceptions import LLManagerError

    async def _stop():
        async with _manager() as manager:
            return await manager.stop_service()

    try:
        asyncio.run(_stop())
    except LLManagerError as e:
        _fail(e)
    console.print("[green]Stopped.[/]")


@app.command(name="list")
def list_models():
    """Lists installed models and whether each one is loaded."""

    async def _list():
        async with _manager() as manager:
            await manager.check_initial_status()
            return manager.state.snapshot()

    snapshot = asyncio.run(_list())

    if not snapshot.process.running:
        console.print("[red]The daemon is not running.[/] Use 'llmanager start'.")
        raise typer.Exit(1)
    if snapshot.error:
        console.print(f"[yellow]Warning:[/] {snapshot.error}")
    if not snapshot.models:
        console.print("[dim]No models installed.[/]")
        return
    console.print(_models_table(snapshot.models))


@app.command()
def ps():
    """Lists the models currently loaded in memory."""
    from llmanager.exceptions import LLManagerError
    from llmanager.models.formatting import format_bytes, format_relative_date

    async def _ps():
        async with _manager() as manager:
            return await manager.client.list_active()

    try:
        active = asyncio.run(_ps())
    except LLManagerError as e:
        _fail(e)

    if not active:
        console.print("[dim]No models loaded.[/]")
        return

    table = Table(title="Loaded Models")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("VRAM", justify="right")
    table.add_column("Quantization")
    table.add_column("Until")
    for m in active:
        table.add_row(
            m.name,
            format_bytes(m.size),
            format_bytes(m.size_vram),
            m.details.quantization_level or "N/A",
            format_relative_date(m.expires_at),
        )
    console.print(table)


@app.command()
def load(
    model: str = typer.Argument(help="Installed model name (e.g. llama3.2:3b)"),
    keep_alive: str = typer.Option(
        None, "--keep-alive", "-k", help="How long to keep it loaded (e.g. 10m, 1h, -1)"
    ),
):
    """Loads a model into memory."""
    from llmanager.exceptions import LLManagerError

    async def _load():
        async with _manager() as manager:
            return await manager.load_model(model, keep_alive=keep_alive)

    console.print(f"[cyan]Loading[/] {model}...")
    try:
        done = asyncio.run(_load())
    except LLManagerError as e:
        _fail(e)
    if done:
        console.print(f"[green]Loaded:[/] {model}")
    else:
        console.print(f"[yellow]Request accepted but not finished:[/] {model}")


@app.command()
def unload(model: str = typer.Argument(help="Loaded model name")):
    """Unloads a model from memory."""
    from llmanager.exceptions import LLManagerError

    async def _unload():
        async with _manager() as manager:
            return await manager.unload_model(model)

    try:
        asyncio.run(_unload())
    except LLManagerError as e:
        _fail(e)
    console.print(f"[green]Unloaded:[/] {model}")


@app.command()
def rm(
    model: str = typer.Argument(help="Name of the model to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Removes an installed model from the daemon's storage."""
    from llmanager.exceptions import LLManagerError

    if not yes and not typer.confirm(f"Remove {model}?"):
        return

    async def _rm():
        async with _manager() as manager:
            await manager.remove_model(model)

    try:
        asyncio.run(_rm())
    except LLManagerError as e:
        _fail(e)
    console.print(f"[green]Removed:[/] {model}")


@app.command()
def watch(
    interval: float = typer.Option(15.0, "--interval", "-i", help="Seconds between refreshes"),
):
    """Shows the model table and keeps it up to date until Ctrl+C."""
    from rich.live import Live

    from llmanager.exceptions import LLManagerError

    async def _watch() -> bool:
        async with _manager(refresh_interval=interval) as manager:
            await manager.check_initial_status()
            if not manager.state.process.running:
                return False

            changed = asyncio.Event()
            loop = asyncio.get_running_loop()
            unsubscribe = manager.state.subscribe(
                lambda fields: loop.call_soon_threadsafe(changed.set)
            )
            try:
                with Live(
                    _render(manager.state.snapshot()), console=console, auto_refresh=False
                ) as live:
                    while manager.scheduler.armed:
                        await changed.wait()
                        changed.clear()
                        live.update(_render(manager.state.snapshot()), refresh=True)
            finally:
                unsubscribe()
            return True

    try:
        ran = asyncio.run(_watch())
    except KeyboardInterrupt:
        return
    except LLManagerError as e:
        _fail(e)
    if not ran:
        console.print("[red]The daemon is not running.[/] Use 'llmanager start'.")
        raise typer.Exit(1)
    console.print("[yellow]The daemon stopped.[/]")


@app.command()
def version():
    """Shows the llmanager version and, if reachable, the daemon's."""
    from llmanager import __version__
    from llmanager.exceptions import RemoteError

    console.print(f"llmanager v{__version__}")

    async def _version():
        async with _manager() as manager:
            return await manager.client.version()

    try:
        daemon_version = asyncio.run(_version())
    except RemoteError:
        daemon_version = None
    console.print(f"[dim]daemon:[/] {daemon_version or 'N/A'}")


if __name__ == "__main__":
    app()
