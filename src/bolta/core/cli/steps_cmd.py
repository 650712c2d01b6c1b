"""bolta add / reset / sync: change today's record."""

from __future__ import annotations

import asyncio
import sys

import click

from bolta.core.cli.common import echo_notifications, format_record, load_config, warn_unsaved
from bolta.core.config import Config
from bolta.core.exceptions import InvalidManualInputError


@click.command()
@click.argument("steps", type=int)
@click.pass_context
def add(ctx: click.Context, steps: int) -> None:
    """Add STEPS manually to today's total."""
    config = load_config(ctx)
    try:
        asyncio.run(_add(config, steps))
    except InvalidManualInputError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)


async def _add(config: Config, steps: int) -> None:
    from bolta.tracking.factory import open_session
    from bolta.tracking.notifications import CollectingSink, MilestoneNotifier

    session = await open_session(config)
    sink = CollectingSink()
    MilestoneNotifier(sink).attach(session.bus)

    change = session.add_steps(steps)
    warn_unsaved(await session.store.flush())

    click.echo(f"Added {change.steps_added:,} steps.")
    click.echo(format_record(change.current, session.store.rewards.daily_goal))
    echo_notifications(sink)


@click.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Reset today's steps to zero (Boltacoins are kept)."""
    config = load_config(ctx)
    if not yes and not click.confirm("Reset today's steps to zero?"):
        click.echo("Aborted.")
        return
    asyncio.run(_reset(config))


async def _reset(config: Config) -> None:
    from bolta.tracking.factory import open_session

    session = await open_session(config)
    change = session.reset_daily()
    warn_unsaved(await session.store.flush())
    click.echo(f"Reset {change.previous.steps:,} steps. Balance: {change.current.coins} Boltacoins.")


@click.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Pull today's total from the configured external step source."""
    config = load_config(ctx)
    if not config.get("scheduler.external_sync.source"):
        click.echo("No external step source configured (scheduler.external_sync.source).")
        return
    asyncio.run(_sync(config))


async def _sync(config: Config) -> None:
    from bolta.tracking.factory import open_session
    from bolta.tracking.notifications import CollectingSink, MilestoneNotifier

    session = await open_session(config)
    if session.external_source is None:
        click.echo("External step source is not available.")
        return
    sink = CollectingSink()
    MilestoneNotifier(sink).attach(session.bus)

    change = await session.poll_external()
    warn_unsaved(await session.store.flush())
    if change is None or change.steps_added <= 0:
        click.echo(f"No new steps from {session.external_source.name}.")
        return
    click.echo(f"Synced {change.steps_added:,} steps from {session.external_source.name}.")
    click.echo(format_record(change.current, session.store.rewards.daily_goal))
    echo_notifications(sink)
