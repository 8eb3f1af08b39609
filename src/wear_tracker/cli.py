#!/usr/bin/env python3
"""wear-tracker command line.

Usage:
    wear-tracker add "Retainer"
    wear-tracker toggle Retainer         # start / stop wearing
    wear-tracker list                    # today's totals
    wear-tracker stats Retainer          # weekly and monthly history
    wear-tracker rename Retainer "Night retainer"
    wear-tracker delete Retainer
    wear-tracker watch                   # evaluate on a timer, print reminders
"""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.table import Table

from . import timefmt
from .clock import SystemClock
from .config import Settings, load_settings
from .dispatch import EffectDispatcher
from .engine import DeviceTimeAccountingEngine, EngineEvent
from .errors import NotFoundError, WearTrackerError
from .ledger import LedgerSummary, TimeFrame
from .logging_setup import configure_logging
from .notifications import ConsoleNotificationSink, NotificationSink
from .scheduler import EvaluationScheduler
from .store import SqliteDeviceStore

console = Console()


@contextmanager
def open_engine(settings: Settings, notifier: NotificationSink | None = None) -> Iterator[DeviceTimeAccountingEngine]:
    """Engine backed by the SQLite store, loaded and caught up. Flushes writes on exit."""
    dispatcher = EffectDispatcher()
    try:
        store = SqliteDeviceStore(settings.db_path)
        dispatcher.run(store.init())
        policy = settings.policy()
        engine = DeviceTimeAccountingEngine(
            store,
            notifier or ConsoleNotificationSink(console, policy),
            clock=SystemClock(),
            policy=policy,
            dispatcher=dispatcher,
        )
        engine.load()
        yield engine
        engine.flush()
    except WearTrackerError as e:
        raise click.ClickException(str(e)) from e
    finally:
        dispatcher.close()


def _state_label(running: bool) -> str:
    return "[bold green]wearing[/bold green]" if running else "[dim]off[/dim]"


def _print_summary(summary: LedgerSummary, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan", box=None)
    table.add_column("Day", style="dim")
    table.add_column("Worn", justify="right")
    for day, seconds in summary.days:
        table.add_row(day.strftime("%a %Y-%m-%d"), timefmt.format_hours_minutes(seconds))
    if not summary.days:
        table.add_row("[yellow]no history yet[/yellow]", "")
    console.print(table)
    console.print(
        f"  Total: [bold]{timefmt.format_hours_minutes(summary.total)}[/bold]   "
        f"Average/day: [bold]{timefmt.format_hours_minutes(summary.average_per_day)}[/bold] "
        f"[dim]({len(summary.days)} recorded day(s))[/dim]"
    )


# ── Commands ──────────────────────────────────────────────────


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="SQLite database file (defaults to WEAR_TRACKER_DB or ~/.wear-tracker/devices.db).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, verbose: bool) -> None:
    """Track daily wear time for retainers, aligners and other devices."""
    try:
        settings = load_settings()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if db_path is not None:
        settings.db_path = db_path
    settings.verbose = settings.verbose or verbose
    configure_logging(settings.verbose)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("name")
@click.pass_context
def add(ctx: click.Context, name: str) -> None:
    """Add a device to track."""
    with open_engine(ctx.obj["settings"]) as engine:
        device = engine.add_device(name)
    console.print(f"Added [bold]{device.name}[/bold] [dim]({device.id[:8]})[/dim]")


@cli.command()
@click.argument("device")
@click.argument("new_name")
@click.pass_context
def rename(ctx: click.Context, device: str, new_name: str) -> None:
    """Rename DEVICE (id, id prefix or name)."""
    with open_engine(ctx.obj["settings"]) as engine:
        target = engine.resolve(device)
        renamed = engine.rename_device(target.id, new_name)
    console.print(f"Renamed [bold]{target.name}[/bold] to [bold]{renamed.name}[/bold]")


@cli.command()
@click.argument("devices", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, devices: tuple[str, ...]) -> None:
    """Delete one or more devices. Unknown devices are skipped."""
    with open_engine(ctx.obj["settings"]) as engine:
        ids = []
        for ref in devices:
            try:
                ids.append(engine.resolve(ref).id)
            except NotFoundError:
                console.print(f"[yellow]No device matching '{ref}', skipped[/yellow]")
        removed = engine.delete_devices(ids)
    console.print(f"Deleted {removed} device(s)")


@cli.command()
@click.argument("device")
@click.pass_context
def toggle(ctx: click.Context, device: str) -> None:
    """Start wearing DEVICE, or stop if it is already being worn."""
    with open_engine(ctx.obj["settings"]) as engine:
        target = engine.resolve(device)
        updated = engine.toggle_timer(target.id)
        total = engine.total_time(target.id)
    verb = "Started" if updated.is_running else "Stopped"
    console.print(
        f"{verb} [bold]{updated.name}[/bold]. Worn today: {timefmt.format_clock(total)}"
    )


@cli.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Print device records as JSON")
@click.pass_context
def list_devices(ctx: click.Context, as_json: bool) -> None:
    """Show every device with today's, this week's and this month's totals."""
    with open_engine(ctx.obj["settings"]) as engine:
        now = SystemClock().now()
        devices = engine.devices
        rows = [
            (
                device,
                device.total_time(now),
                engine.ledger.total_time(device, TimeFrame.WEEK),
                engine.ledger.total_time(device, TimeFrame.MONTH),
            )
            for device in devices
        ]

    if as_json:
        click.echo(json.dumps([device.to_dict() for device, *_ in rows], indent=2))
        return

    if not rows:
        console.print("[yellow]No devices yet. Add one with 'wear-tracker add NAME'.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("ID", style="dim", width=8)
    table.add_column("Device")
    table.add_column("State")
    table.add_column("Today", justify="right")
    table.add_column("Week", justify="right")
    table.add_column("Month", justify="right")
    for device, today, week, month in rows:
        table.add_row(
            device.id[:8],
            device.name,
            _state_label(device.is_running),
            timefmt.format_clock(today),
            timefmt.format_short(week),
            timefmt.format_short(month),
        )
    console.print(table)


@cli.command()
@click.argument("device")
@click.pass_context
def stats(ctx: click.Context, device: str) -> None:
    """Weekly and monthly history for DEVICE."""
    with open_engine(ctx.obj["settings"]) as engine:
        target = engine.resolve(device)
        week = engine.stats(target.id, TimeFrame.WEEK)
        month = engine.stats(target.id, TimeFrame.MONTH)
        today = engine.total_time(target.id)

    console.print(f"[bold]{target.name}[/bold]  today: {timefmt.format_clock(today)}")
    _print_summary(week, "Last 7 days")
    _print_summary(month, "Last 30 days")


@cli.command()
@click.option("--interval", type=float, help="Seconds between evaluations (defaults to WEAR_TRACKER_TICK_SECONDS).")
@click.pass_context
def watch(ctx: click.Context, interval: float | None) -> None:
    """Evaluate devices on a timer, rolling over days and printing reminders."""
    settings: Settings = ctx.obj["settings"]
    with open_engine(settings) as engine:
        def on_event(event: EngineEvent, device_id: str) -> None:
            if event == EngineEvent.DAY_ROLLED_OVER:
                console.print(f"[cyan]New day started for {device_id[:8]}, history updated[/cyan]")

        engine.subscribe(on_event)
        scheduler = EvaluationScheduler(engine, interval or settings.tick_seconds)
        scheduler.start()
        console.print("Watching devices. Press Ctrl+C to stop.")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("Stopping.")
        finally:
            scheduler.shutdown()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":  # pragma: no cover
    main()
