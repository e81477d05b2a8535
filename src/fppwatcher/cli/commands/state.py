# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
State command implementation.
"""

import click

from ...shared.config import Config
from ..formatters import get_formatter
from ._common import collector_choice, output_format, select_collectors


@click.command()
@click.argument("collector", type=collector_choice)
@click.option(
    "--reset",
    is_flag=True,
    help="Zero every cursor so the next pass starts over"
)
@click.option(
    "--yes",
    is_flag=True,
    help="Do not ask for confirmation when resetting"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def state(config: Config, collector: str, reset: bool, yes: bool, format: str):
    """
    Show or reset rollup cursors.

    Examples:
        watcher-metrics state ping
        watcher-metrics state ping --reset --yes
    """
    formatter = get_formatter(output_format(config, format))
    instance = select_collectors(config, collector)[collector]

    if reset:
        if not yes:
            click.confirm(f"Reset {collector} rollup state?", abort=True)
        cursors = instance.reset_state()
        formatter.format_success(f"{collector} rollup state reset")
    else:
        cursors = instance.get_rollup_state()

    formatter.format_state(collector, cursors)
