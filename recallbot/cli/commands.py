"""CLI commands for recallbot."""

import asyncio
import sys
import time

import typer
from rich.console import Console
from rich.table import Table

from recallbot import __logo__, __version__

app = typer.Typer(
    name="recallbot",
    help=f"{__logo__} recallbot - Recover deleted chat messages",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} recallbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """recallbot - Recover deleted chat messages."""
    pass


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the Telegram channel and the AntiDelete service."""
    from loguru import logger

    from recallbot.bus.queue import EventBus
    from recallbot.channels.telegram import TelegramChannel
    from recallbot.config.loader import load_config
    from recallbot.shadow.service import AntiDeleteService

    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG")

    config = load_config()
    tg = config.channels.telegram

    if not tg.enabled or not tg.token:
        console.print("[red]Error: Telegram channel is not enabled or has no token[/red]")
        raise typer.Exit(1)
    if not config.antidelete.owner_chat_id:
        console.print("[yellow]Warning: antidelete.ownerChatId not set, reports will be skipped[/yellow]")

    console.print(f"{__logo__} Starting recallbot...")

    bus = EventBus()
    channel = TelegramChannel(tg, bus)
    service = AntiDeleteService(config.antidelete, channel)

    state = "[green]enabled[/green]" if service.enabled else "[dim]disabled[/dim]"
    console.print(f"[green]✓[/green] AntiDelete: {state}, {service.size()} cached entries")

    async def run_all():
        try:
            await asyncio.gather(channel.start(), service.run(bus))
        finally:
            service.stop()
            await channel.stop()

    try:
        asyncio.run(run_all())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Enable / Status
# ============================================================================


@app.command()
def enable(
    disable: bool = typer.Option(False, "--disable", help="Disable instead of enable"),
):
    """Enable or disable deleted-message recovery."""
    from recallbot.config.loader import load_config, save_config

    config = load_config()
    config.antidelete.enabled = not disable
    save_config(config)

    status = "disabled" if disable else "enabled"
    console.print(f"[green]✓[/green] AntiDelete {status}")


@app.command()
def status():
    """Show recallbot status."""
    from recallbot.config.loader import get_config_path, load_config
    from recallbot.shadow.snapshot import SnapshotPersistence

    config_path = get_config_path()
    config = load_config()
    snapshot_path = config.snapshot_file

    console.print(f"{__logo__} recallbot Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Snapshot: {snapshot_path} {'[green]✓[/green]' if snapshot_path.exists() else '[red]✗[/red]'}")

    ad = config.antidelete
    console.print(f"AntiDelete: {'[green]enabled[/green]' if ad.enabled else '[dim]disabled[/dim]'}")
    console.print(f"Capacity: {ad.capacity}")
    console.print(f"Reports to: {ad.owner_chat_id or '[dim]not set[/dim]'}")
    console.print(f"Telegram: {'[green]✓[/green]' if config.channels.telegram.enabled else '[dim]✗[/dim]'}")

    if snapshot_path.exists():
        entries = SnapshotPersistence(snapshot_path).load()
        console.print(f"Cached entries: {len(entries)}")


# ============================================================================
# Cache Commands
# ============================================================================

cache_app = typer.Typer(help="Inspect the deleted-message cache")
app.add_typer(cache_app, name="cache")


@cache_app.command("list")
def cache_list(
    limit: int = typer.Option(20, "--limit", "-n", help="Show the N newest entries"),
):
    """List cached entries from the snapshot (newest last)."""
    from recallbot.config.loader import load_config
    from recallbot.shadow.models import MediaEntry, RawEntry, TextEntry
    from recallbot.shadow.snapshot import SnapshotPersistence

    config = load_config()
    snapshot_path = config.snapshot_file
    if not snapshot_path.exists():
        console.print("No cached entries.")
        return

    entries = list(SnapshotPersistence(snapshot_path).load().items())
    if not entries:
        console.print("No cached entries.")
        return

    table = Table(title="Cached Entries")
    table.add_column("Key", style="cyan")
    table.add_column("Kind")
    table.add_column("Sender")
    table.add_column("Time")
    table.add_column("Content")

    for key, entry in entries[-limit:] if limit > 0 else entries:
        when = time.strftime("%Y-%m-%d %H:%M", time.localtime(entry.timestamp_ms / 1000))
        if isinstance(entry, TextEntry):
            content = entry.body[:40]
        elif isinstance(entry, MediaEntry):
            content = entry.file_name or entry.caption or f"{entry.size_bytes} bytes"
        elif isinstance(entry, RawEntry):
            content = f"[dim]{len(entry.raw)} fields[/dim]"
        else:
            content = ""
        table.add_row(str(key), entry.kind.value, entry.sender_id, when, content)

    console.print(table)


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Remove every cached entry from the snapshot."""
    from recallbot.config.loader import load_config
    from recallbot.shadow.service import build_store

    config = load_config()
    if not yes and not typer.confirm("Clear all cached entries?"):
        raise typer.Exit()

    store = build_store(config.antidelete)
    store.load_snapshot()
    count = store.size()
    store.clear()
    console.print(f"[green]✓[/green] Cleared {count} cached entries")


if __name__ == "__main__":
    app()
