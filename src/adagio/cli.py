#!/usr/bin/env python3
"""
Adagio CLI

Run the engine's HTTP server, or inspect and manage the local work log.
"""

from datetime import date, datetime

import click
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from rich.console import Console
from rich.table import Table
from rich import box

from .config import db_option, get_config, verbose_option
from .engine import build_engine
from .errors import AdagioError, ConfigError
from .insights import TimeFilter
from .log import configure_logging

console = Console()


def _load_engine(ctx):
    config = ctx.obj["config"]
    # Never started: one-shot commands queue no work that needs to run
    engine = build_engine(config, AsyncIOScheduler())
    engine.load()
    return engine


def _fmt_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


@click.group()
@db_option
@verbose_option
@click.pass_context
def cli(ctx, db_path, verbose):
    """Adagio - focus timer engine and work log."""
    try:
        config = get_config()
    except ConfigError as e:
        raise click.ClickException(str(e))
    if db_path is not None:
        config.db_path = db_path
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose

    if verbose:
        configure_logging("DEBUG")
        click.echo(f"Using database: {config.db_path}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", type=int, default=None, help="Port (overrides ADAGIO_PORT)")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API server."""
    import uvicorn

    from .api import create_app

    config = ctx.obj["config"]
    configure_logging("DEBUG" if ctx.obj["verbose"] else config.log_level)
    scheduler = AsyncIOScheduler()
    engine = build_engine(config, scheduler)
    app = create_app(engine, scheduler)
    uvicorn.run(app, host=host, port=port or config.port, log_level=config.log_level.lower())


@cli.command(name="log")
@click.option("--all", "show_all", is_flag=True, help="Show the full log, not just the free-tier window")
@click.pass_context
def show_log(ctx, show_all):
    """Show logged work."""
    engine = _load_engine(ctx)
    entries = engine.full_log if show_all else engine.log
    if not entries:
        console.print("[dim]No work logged yet.[/dim]")
        return

    table = Table(title="Work Log", box=box.SIMPLE_HEAVY, show_edge=False)
    table.add_column("Ended", style="dim", no_wrap=True)
    table.add_column("Project", style="white")
    table.add_column("Min", justify="right", style="cyan")
    table.add_column("Summary", style="dim", max_width=50)
    table.add_column("ID", style="dim", no_wrap=True)
    for entry in sorted(entries, key=lambda e: e.end_ms, reverse=True):
        table.add_row(
            _fmt_ms(entry.end_ms),
            entry.project_label or "-",
            str(entry.duration_minutes),
            entry.summary or "",
            entry.id,
        )
    console.print(table)
    if not show_all and engine.exceeds_free_limit:
        console.print("[yellow]Older entries are hidden. Use --all to include them.[/yellow]")


@cli.command()
@click.option(
    "--period",
    type=click.Choice([f.value for f in TimeFilter]),
    default=TimeFilter.TODAY.value,
    show_default=True,
)
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), help="Custom period start")
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), help="Custom period end")
@click.pass_context
def stats(ctx, period, start, end):
    """Show time totals per project for a period."""
    engine = _load_engine(ctx)
    period = TimeFilter(period)
    start_day: date | None = start.date() if start else None
    end_day: date | None = end.date() if end else None
    try:
        summary = engine.insights(period, start_day, end_day)
        totals = engine.project_totals(period, start_day, end_day)
    except AdagioError as e:
        raise click.ClickException(str(e))

    table = Table(title=f"Insights ({period.value})", box=box.SIMPLE_HEAVY, show_edge=False)
    table.add_column("Project", style="white")
    table.add_column("Minutes", justify="right", style="cyan")
    for total in totals:
        table.add_row(total.name, str(total.total_minutes))
    console.print(table)
    console.print(
        f"Total: [bold]{summary.total_minutes}[/bold] min across "
        f"{summary.total_sessions} sessions (avg {summary.average_session_minutes} min)"
    )


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def wipe(ctx, yes):
    """Delete all local settings, sessions, log entries and recent projects."""
    if not yes:
        click.confirm("This permanently deletes all local data. Continue?", abort=True)
    engine = _load_engine(ctx)
    engine.wipe_all()
    click.echo("All local data wiped.")


if __name__ == "__main__":
    cli()
