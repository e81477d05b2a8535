# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
JSON formatter for structured output.
"""

import json
from typing import Any, Dict, List

from rich.console import Console
from rich.syntax import Syntax

from ...metrics.rollup import RollupReadResult, TierResult
from ...metrics.storage import RotationResult
from .base import BaseFormatter

console = Console()


class JSONFormatter(BaseFormatter):
    """Format output as JSON for scripting and automation."""

    def __init__(self, pretty: bool = True, colored: bool = False):
        """Initialize JSON formatter.

        Args:
            pretty: Whether to pretty-print JSON
            colored: Whether to use syntax highlighting
        """
        self.pretty = pretty
        self.colored = colored

    def format_rollup_results(self, results: Dict[str, List[TierResult]]):
        """Format rollup results as JSON."""
        self._print_json({
            name: [result.to_dict() for result in tier_results]
            for name, tier_results in results.items()
        })

    def format_rotation_results(self, results: Dict[str, RotationResult]):
        """Format rotation results as JSON."""
        self._print_json({name: result.to_dict() for name, result in results.items()})

    def format_metrics(self, collector: str, result: RollupReadResult):
        """Format rollup data as JSON."""
        self._print_json({"collector": collector, **result.to_dict()})

    def format_tiers(self, collector: str, tiers: Dict[str, Dict[str, Any]]):
        """Format tier information as JSON."""
        self._print_json({"collector": collector, "tiers": tiers})

    def format_state(self, collector: str, state: Dict[str, Dict[str, int]]):
        """Format rollup state as JSON."""
        self._print_json({"collector": collector, "state": state})

    def format_error(self, error: str):
        """Format error message as JSON."""
        self._print_json({"error": error, "success": False})

    def _print_json(self, data: Any):
        """Print JSON with optional formatting and coloring."""
        if self.pretty:
            json_str = json.dumps(data, indent=2, sort_keys=False, default=str)
        else:
            json_str = json.dumps(data, default=str)

        if self.colored:
            syntax = Syntax(json_str, "json", theme="monokai")
            console.print(syntax)
        else:
            print(json_str)
