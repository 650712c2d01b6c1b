"""Bolta CLI: entry point for status, add, reset, history, sync, replay and run."""

import click

from bolta import __version__


@click.group()
@click.version_option(version=__version__, package_name="bolta")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a YAML or JSON config file (default: ~/.bolta/config.yaml).",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """Bolta: count your steps, earn Boltacoins."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# Register subcommands
from .history_cmd import history
from .replay_cmd import replay
from .run_cmd import run
from .status_cmd import status
from .steps_cmd import add, reset, sync

main.add_command(status)
main.add_command(add)
main.add_command(reset)
main.add_command(sync)
main.add_command(history)
main.add_command(replay)
main.add_command(run)
