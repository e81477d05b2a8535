# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Rollup command implementation.
"""

import sys

import click
from rich.console import Console

from ...metrics.rollup import TierStatus
from ...shared.config import Config
from ..formatters import get_formatter
from ._common import collector_choice, output_format, select_collectors

console = Console()


@click.command()
@click.option(
    "--collector", "-c",
    type=collector_choice,
    help="Only process this collector (default: all enabled)"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def rollup(config: Config, collector: str, format: str):
    """
    Run one rollup pass over every tier.

    Examples:
        watcher-metrics rollup
        watcher-metrics rollup --collector ping
    """
    formatter = get_formatter(output_format(config, format))
    collectors = select_collectors(config, collector)

    results = {}
    with console.status("Processing rollups..."):
        for name, instance in collectors.items():
            results[name] = instance.process_rollup()

    formatter.format_rollup_results(results)

    failed = any(
        result.status == TierStatus.FAILED
        for tier_results in results.values()
        for result in tier_results
    )
    if failed:
        sys.exit(1)
