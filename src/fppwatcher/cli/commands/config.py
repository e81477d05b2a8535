# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Config command implementation for inspecting and editing config.yaml.
"""

import json

import click
import yaml
from rich.console import Console

from ...shared.config import Config
from ..formatters import get_formatter
from ._common import output_format

console = Console()


@click.command()
@click.option(
    "--get",
    help="Get specific configuration key"
)
@click.option(
    "--set",
    nargs=2,
    help="Set key-value pair (key value)"
)
@click.option(
    "--validate",
    is_flag=True,
    help="Validate configuration"
)
@click.pass_obj
def config(config: Config, get: str, set: tuple, validate: bool):
    """
    Inspect, edit and validate the configuration file.

    Values passed to --set are parsed as YAML, so numbers and booleans keep
    their types. The file is only written when the result validates.

    Examples:
        watcher-metrics config --get rollup.interval
        watcher-metrics config --set rollup.interval 30
        watcher-metrics config --validate
    """
    formatter = get_formatter(output_format(config, None))

    if get:
        value = config.get(get)
        if value is None:
            formatter.format_error(f"Configuration key not found: {get}")
            raise click.Abort()

        if output_format(config, None) == "json":
            console.print(json.dumps({get: value}, indent=2))
        else:
            console.print(f"{get}: {value}")
        return

    if set:
        key, raw_value = set
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value

        # Start from the file so command-line overrides are not persisted
        stored = Config(config_dir=config.config_dir)
        stored.set(key, value)
        if not stored.validate():
            formatter.format_error(f"Refusing to save invalid value {key} = {value}")
            raise click.Abort()

        stored.save_to_file()
        formatter.format_success(f"Set {key} = {value}")
        return

    if validate:
        if config.validate():
            formatter.format_success("Configuration is valid")
        else:
            formatter.format_error("Configuration validation failed")
            raise click.Abort()
        return

    click.echo(click.get_current_context().get_help())
