"""Shared setup logic for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from bolta.core.config import Config
from bolta.core.exceptions import ConfigurationError
from bolta.core.utils.logging import setup_logging_from_config
from bolta.tracking.models import StepRecord
from bolta.tracking.notifications import CollectingSink

BOLTA_DIR = Path.home() / ".bolta"
CONFIG_PATH = BOLTA_DIR / "config.yaml"


def load_config(ctx: click.Context) -> Config:
    """Load config from ``--config`` (or ~/.bolta/config.yaml) and set up logging."""
    path = (ctx.obj or {}).get("config_path") or str(CONFIG_PATH)
    try:
        config = Config(config_file=path)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    setup_logging_from_config(config)
    return config


def format_record(record: StepRecord, daily_goal: int) -> str:
    pct = min(record.steps / daily_goal, 1.0) * 100 if daily_goal else 0.0
    return (
        f"{record.date.isoformat()}  {record.steps:,} steps ({pct:.0f}% of {daily_goal:,})\n"
        f"  distance: {record.distance_km:.2f} km  calories: {record.calories} kcal\n"
        f"  Boltacoins: {record.coins}  (last update {record.last_updated:%H:%M}, {record.source.value})"
    )


def echo_notifications(sink: CollectingSink) -> None:
    for note in sink.notifications:
        click.echo(f"* {note.title} {note.message}")


def warn_unsaved(saved: bool) -> None:
    if not saved:
        click.echo("Warning: could not save the daily record; it will be retried next time.", err=True)
