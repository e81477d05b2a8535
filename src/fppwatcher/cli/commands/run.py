# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Run command implementation.
"""

import asyncio
import logging

import click
from rich.console import Console

from ...collectors import build_collectors
from ...scheduler import RollupScheduler
from ...shared.config import Config

logger = logging.getLogger(__name__)
console = Console()


@click.command()
@click.option(
    "--interval",
    type=float,
    help="Seconds between rollup passes (default: rollup.interval)"
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single pass and exit"
)
@click.pass_obj
def run(config: Config, interval: float, once: bool):
    """
    Run the rollup scheduler until interrupted.

    Examples:
        watcher-metrics run
        watcher-metrics run --interval 30
    """
    if not config.validate():
        console.print(f"[red]✗[/red] Invalid configuration in {config.config_path}, see log for details")
        raise click.Abort()

    collectors = build_collectors(config)
    if not collectors:
        console.print("[yellow]⚠[/yellow] No collectors enabled")
        return

    scheduler = RollupScheduler(
        collectors,
        interval=interval or config.get("rollup.interval", 60),
        rotation_interval=config.get("rollup.rotation_interval", 1800),
    )

    if once:
        asyncio.run(scheduler.process_once())
        console.print(f"[green]✓[/green] Processed {len(collectors)} collectors")
        return

    asyncio.run(_serve(scheduler))


async def _serve(scheduler: RollupScheduler) -> None:
    await scheduler.start()
    try:
        await scheduler.wait()
    finally:
        await scheduler.stop()
