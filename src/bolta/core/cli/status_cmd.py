"""bolta status: show today's record."""

from __future__ import annotations

import asyncio

import click

from bolta.core.cli.common import format_record, load_config, warn_unsaved
from bolta.core.config import Config


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show today's steps, distance, calories, coins and goal streak."""
    config = load_config(ctx)
    click.echo(asyncio.run(_status(config)))


def format_streak(days: int) -> str:
    if days == 0:
        return "  goal streak: none"
    return f"  goal streak: {days} day{'s' if days != 1 else ''}"


async def _status(config: Config) -> str:
    from bolta.tracking.factory import open_session

    session = await open_session(config)
    store = session.store
    text = format_record(store.record, store.rewards.daily_goal) + "\n" + format_streak(store.current_streak())
    # loading may have rolled the day over
    warn_unsaved(await store.flush())
    return text
