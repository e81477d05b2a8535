# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Metrics command implementation.
"""

import sys

import click

from ...shared.config import Config
from ..formatters import get_formatter
from ._common import collector_choice, output_format, select_collectors


@click.command()
@click.argument("collector", type=collector_choice)
@click.option(
    "--hours", "-h",
    type=float,
    default=24,
    show_default=True,
    help="Hours of history to show"
)
@click.option(
    "--dimension", "-d",
    help="Only entries for this host, port or rail"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def metrics(config: Config, collector: str, hours: float, dimension: str, format: str):
    """
    Show rollup data from the best tier for a time window.

    Examples:
        watcher-metrics metrics ping --hours 6
        watcher-metrics metrics multisync_ping --dimension fpp-remote1
        watcher-metrics metrics efuse --hours 48 --format json
    """
    formatter = get_formatter(output_format(config, format))
    instance = select_collectors(config, collector)[collector]

    result = instance.get_metrics(hours, dimension)
    if not result.success:
        formatter.format_error(result.error or "Unable to read metrics")
        sys.exit(1)

    if not result.data:
        formatter.format_info(f"No {collector} data in the last {hours:g} hours")
        return

    formatter.format_metrics(collector, result)
