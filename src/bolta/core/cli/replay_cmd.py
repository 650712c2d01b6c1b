"""bolta replay: run recorded accelerometer samples through step detection."""

from __future__ import annotations

import asyncio

import click

from bolta.core.cli.common import echo_notifications, load_config, warn_unsaved
from bolta.core.config import Config


@click.command()
@click.argument("samples_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--profile", type=click.Choice(["simple", "strict"]), default=None, help="Validation profile.")
@click.option(
    "--persist/--no-persist",
    default=False,
    show_default=True,
    help="Commit detected steps to today's record instead of a scratch store.",
)
@click.pass_context
def replay(ctx: click.Context, samples_file: str, profile: str | None, persist: bool) -> None:
    """Detect steps in SAMPLES_FILE (CSV with x,y,z,timestamp or a JSON list)."""
    config = load_config(ctx)
    asyncio.run(_replay(config, samples_file, profile, persist))


async def _replay(config: Config, samples_file: str, profile: str | None, persist: bool) -> None:
    from bolta.core.storage import MemoryStore
    from bolta.tracking.factory import open_session
    from bolta.tracking.notifications import CollectingSink, MilestoneNotifier
    from bolta.tracking.sources import ReplayMotionSource, StaticPermission

    source = ReplayMotionSource.from_file(samples_file)
    session = await open_session(
        config,
        sensor=source,
        permissions=StaticPermission(granted=True),
        backend=None if persist else MemoryStore(),
        profile=profile,
    )
    sink = CollectingSink()
    MilestoneNotifier(sink).attach(session.bus)

    await session.start()
    delivered = source.replay()
    session.stop()
    if persist:
        warn_unsaved(await session.store.flush())

    pipeline = session.pipeline
    click.echo(f"Samples: {delivered}  peaks: {pipeline.peaks_seen}  steps: {pipeline.steps_accepted}")
    for reason, count in sorted(pipeline.rejections.items()):
        click.echo(f"  rejected ({reason}): {count}")
    echo_notifications(sink)
