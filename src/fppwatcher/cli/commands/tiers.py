# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tiers command implementation.
"""

import click

from ...shared.config import Config
from ..formatters import get_formatter
from ._common import collector_choice, output_format, select_collectors


@click.command()
@click.argument("collector", type=collector_choice)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def tiers(config: Config, collector: str, format: str):
    """
    Show rollup tiers and their files.

    Examples:
        watcher-metrics tiers voltage
    """
    formatter = get_formatter(output_format(config, format))
    instance = select_collectors(config, collector)[collector]
    formatter.format_tiers(collector, instance.get_tiers_info())
