# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for the watcher metrics engine.
"""

import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .commands import config as config_command, metrics, rollup, rotate, run, state, tiers
from ..shared.config import Config
from ..shared.logging import setup_logging

# Create console for rich output
console = Console()


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit"
)
@click.option(
    "--config-dir",
    envvar="WATCHER_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing config.yaml"
)
@click.option(
    "--data-dir",
    envvar="WATCHER_DATA_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Override paths.data_dir"
)
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    help="Default output format"
)
@click.option(
    "--debug",
    envvar="WATCHER_DEBUG",
    is_flag=True,
    help="Enable debug logging"
)
@click.pass_context
def cli(ctx, version: bool, config_dir: Optional[Path], data_dir: Optional[Path], format: Optional[str], debug: bool):
    """
    FPP Watcher metrics - tiered rollup storage for controller telemetry.

    Examples:
        watcher-metrics rollup
        watcher-metrics metrics ping --hours 6
        watcher-metrics tiers efuse
        watcher-metrics run
        watcher-metrics config --validate
    """
    if version:
        click.echo(f"watcher-metrics version {__version__}")
        ctx.exit()

    config = Config(config_dir=config_dir)
    if data_dir:
        config.set("paths.data_dir", str(data_dir))
    if format:
        config.set("display.format", format)
    if debug:
        config.debug = True
        config.set("logging.level", "DEBUG")

    setup_logging(config.get("logging.level", "INFO"), config.get_path("logging.file"))

    ctx.obj = config

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(rollup.rollup)
cli.add_command(rotate.rotate)
cli.add_command(metrics.metrics)
cli.add_command(tiers.tiers)
cli.add_command(state.state)
cli.add_command(run.run)
cli.add_command(config_command.config)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("WATCHER_DEBUG"):
            console.print_exception()
        else:
            console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
