# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Rotate command implementation.
"""

import click

from ...shared.config import Config
from ..formatters import get_formatter
from ._common import collector_choice, output_format, select_collectors


@click.command()
@click.option(
    "--collector", "-c",
    type=collector_choice,
    help="Only rotate this collector (default: all enabled)"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def rotate(config: Config, collector: str, format: str):
    """
    Drop raw samples older than each collector's raw retention.

    Examples:
        watcher-metrics rotate
        watcher-metrics rotate --collector efuse
    """
    formatter = get_formatter(output_format(config, format))
    collectors = select_collectors(config, collector)

    results = {name: instance.rotate_raw() for name, instance in collectors.items()}
    formatter.format_rotation_results(results)
