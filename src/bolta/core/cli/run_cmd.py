"""bolta run: keep the daily record current in the background."""

from __future__ import annotations

import asyncio

import click

from bolta.core.cli.common import load_config
from bolta.core.config import Config


@click.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run rollover checks and external-sync polling until interrupted."""
    config = load_config(ctx)
    click.echo("Bolta running. Press Ctrl+C to stop.")
    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


async def _run(config: Config) -> None:
    from bolta.tracking.factory import open_session
    from bolta.tracking.notifications import LogNotificationSink, MilestoneNotifier
    from bolta.tracking.scheduler import TrackingScheduler

    session = await open_session(config)
    MilestoneNotifier(LogNotificationSink()).attach(session.bus)
    session.start_background()

    scheduler = TrackingScheduler(submit_fn=session.submit)
    scheduler.add_jobs_from_config(config)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
        await session.stop_background()
