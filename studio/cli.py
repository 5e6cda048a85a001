"""Admin CLI for the studio events system."""

from __future__ import annotations

import asyncio
import os
import sys

import click

# Ensure shared package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

SWEEP_KINDS = ["report", "report-periodic", "reminder", "periodic"]


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


@click.group()
def cli():
    """Studio events administration CLI."""
    pass


# --- Setup ---


@cli.command()
def setup():
    """Run database migrations."""
    click.echo("Running database migrations...")
    _run_migrations()
    click.echo("Setup complete.")


def _run_migrations():
    """Run Alembic migrations using the Python API."""
    from alembic import command
    from alembic.config import Config

    # Look for alembic.ini in /app (Docker) or alongside this script (local)
    for candidate in ["/app/alembic.ini", os.path.join(os.path.dirname(__file__), "alembic.ini")]:
        if os.path.exists(candidate):
            alembic_cfg = Config(candidate)
            script_dir = os.path.join(os.path.dirname(candidate), "alembic")
            if os.path.isdir(script_dir):
                alembic_cfg.set_main_option("script_location", script_dir)
            db_url = os.environ.get("DATABASE_URL")
            if db_url:
                alembic_cfg.set_main_option("sqlalchemy.url", db_url)
            command.upgrade(alembic_cfg, "head")
            return

    click.echo("  Warning: alembic.ini not found, skipping migrations.")


def _documents():
    from shared.database import get_session_factory
    from shared.documents import SqlDocumentStore

    return SqlDocumentStore(get_session_factory())


# --- Studio Management ---


@cli.group()
def studio():
    """Studio management commands."""
    pass


@studio.command("add")
@click.option("--name", required=True, help="Studio name")
@click.option("--time-zone", required=True, help="UTC offset in hours, e.g. +5 or 5.5")
@click.option("--chat-id", required=True, help="Telegram chat ID for notifications")
@click.option("--description", default="", help="Free-text description")
def add_studio(name, time_zone, chat_id, description):
    """Register a studio, or update an existing one."""
    from modules.events.errors import InvalidTimeError
    from modules.events.timeutil import parse_offset

    try:
        parse_offset(time_zone)
    except InvalidTimeError as e:
        raise click.BadParameter(str(e), param_hint="--time-zone")
    run_async(_add_studio(name, time_zone, chat_id, description))


async def _add_studio(name, time_zone, chat_id, description):
    from modules.events.store import Studio, StudioStore
    from shared.database import dispose_engine

    studios = StudioStore(_documents())
    await studios.add(
        Studio(name=name, time_zone=time_zone, chat_id=chat_id, description=description)
    )
    click.echo(f"Saved studio: {name} (UTC{time_zone}, chat {chat_id})")
    await dispose_engine()


@studio.command("list")
def list_studios():
    """List registered studios."""
    run_async(_list_studios())


async def _list_studios():
    from modules.events.store import StudioStore
    from shared.database import dispose_engine

    studios = await StudioStore(_documents()).list_studios()
    if not studios:
        click.echo("No studios found.")
    for s in studios:
        line = f"{s.name} | UTC{s.time_zone or '?'} | chat {s.chat_id or '-'}"
        if s.description:
            line += f" | {s.description}"
        click.echo(line)
    await dispose_engine()


@studio.command("remove")
@click.option("--name", required=True, help="Studio name")
def remove_studio(name):
    """Remove a studio. Its events are left in place."""
    if not run_async(_remove_studio(name)):
        click.echo(f"Studio not found: {name}")
        sys.exit(1)
    click.echo(f"Removed studio: {name}")


async def _remove_studio(name):
    from modules.events.store import StudioStore
    from shared.database import dispose_engine

    removed = await StudioStore(_documents()).remove(name)
    await dispose_engine()
    return removed


# --- Sweeps ---


@cli.group()
def sweep():
    """Reminder sweep commands."""
    pass


@sweep.command("run")
@click.argument("kind", type=click.Choice(SWEEP_KINDS))
def run_sweep_command(kind):
    """Run one sweep immediately."""
    run_async(_run_sweep(kind))


async def _run_sweep(kind):
    from modules.events.context import build_context, close_context
    from modules.events.sweeps import SweepKind, run_sweep

    ctx = await build_context()
    try:
        result = await run_sweep(ctx, SweepKind(kind))
    finally:
        await close_context(ctx)
    click.echo(
        f"Sweep {kind}: scanned {result.scanned}, sent {result.sent}, "
        f"failed {result.send_failures}, deleted {result.deleted}, "
        f"marked {result.updated}"
    )


if __name__ == "__main__":
    cli()
