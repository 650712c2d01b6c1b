"""bolta history: list archived days."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date, timedelta
from typing import TYPE_CHECKING

import click

from bolta.core.cli.common import load_config
from bolta.core.config import Config
from bolta.tracking.models import DaySummary, WeeklySummary

if TYPE_CHECKING:
    from rich.table import Table


@click.command()
@click.option("--days", default=7, show_default=True, type=click.IntRange(min=1), help="How many past days to show.")
@click.option("--weekly", is_flag=True, help="Show totals for the current week (Monday to Sunday) instead.")
@click.pass_context
def history(ctx: click.Context, days: int, weekly: bool) -> None:
    """Show step totals for previous days."""
    from rich.console import Console

    config = load_config(ctx)
    if weekly:
        Console().print(weekly_table(asyncio.run(_weekly(config))))
        return
    summaries = asyncio.run(_history(config, days))
    if not summaries:
        click.echo("No history yet.")
        return
    Console().print(history_table(summaries))


def history_table(summaries: Sequence[DaySummary]) -> Table:
    from rich.table import Table

    table = Table(title="Step history")
    table.add_column("Date")
    table.add_column("Steps", justify="right")
    table.add_column("km", justify="right")
    table.add_column("kcal", justify="right")
    table.add_column("Coins", justify="right")
    table.add_column("Goal")
    for s in summaries:
        goal = ""
        if s.goal_reached:
            goal = f"streak {s.streak_day}" if s.streak_day > 1 else "yes"
        table.add_row(
            s.date.isoformat(),
            f"{s.steps:,}",
            f"{s.distance_km:.2f}",
            str(s.calories),
            str(s.coins_earned),
            goal,
        )
    return table


def weekly_table(week: WeeklySummary) -> Table:
    from rich.table import Table

    table = Table(title=f"Week of {week.week_start.isoformat()} to {week.week_end.isoformat()}", show_header=False)
    table.add_column("Total")
    table.add_column("Value", justify="right")
    table.add_row("Steps", f"{week.total_steps:,}")
    table.add_row("Average steps/day", f"{week.average_steps:,}")
    table.add_row("Distance", f"{week.total_distance_km:.2f} km")
    table.add_row("Calories", f"{week.total_calories} kcal")
    table.add_row("Coins earned", str(week.total_coins))
    table.add_row("Goal days", f"{week.goal_days_reached} of {len(week.days)}")
    return table


async def _history(config: Config, days: int) -> list[DaySummary]:
    from bolta.tracking.factory import open_session

    session = await open_session(config)
    await session.store.flush()
    start = date.today() - timedelta(days=days)
    return session.store.history(start=start)


async def _weekly(config: Config) -> WeeklySummary:
    from bolta.tracking.factory import open_session

    session = await open_session(config)
    await session.store.flush()
    today = session.store.record.date
    return session.store.weekly_summary(today - timedelta(days=today.weekday()))
