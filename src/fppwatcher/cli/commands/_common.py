# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Helpers shared by the CLI commands.
"""

from typing import Dict, Optional

import click

from ...collectors import COLLECTOR_TYPES, BaseMetricsCollector, build_collector, build_collectors
from ...shared.config import Config

collector_choice = click.Choice(list(COLLECTOR_TYPES))


def select_collectors(config: Config, name: Optional[str]) -> Dict[str, BaseMetricsCollector]:
    """One named collector, or every enabled collector when ``name`` is None."""
    if name:
        return {name: build_collector(name, config)}
    return build_collectors(config)


def output_format(config: Config, format: Optional[str]) -> str:
    """Command-level format, falling back to the global one."""
    return format or config.get("display.format", "table")
