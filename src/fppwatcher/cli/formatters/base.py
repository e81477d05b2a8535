# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Base formatter class for output formatting.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.console import Console

from ...metrics.rollup import RollupReadResult, TierResult
from ...metrics.storage import RotationResult

console = Console()


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format_rollup_results(self, results: Dict[str, List[TierResult]]):
        """Format the outcome of a rollup pass."""
        pass

    @abstractmethod
    def format_rotation_results(self, results: Dict[str, RotationResult]):
        """Format the outcome of raw log rotation."""
        pass

    @abstractmethod
    def format_metrics(self, collector: str, result: RollupReadResult):
        """Format rollup data returned for a time window."""
        pass

    @abstractmethod
    def format_tiers(self, collector: str, tiers: Dict[str, Dict[str, Any]]):
        """Format tier information."""
        pass

    @abstractmethod
    def format_state(self, collector: str, state: Dict[str, Dict[str, int]]):
        """Format rollup cursor state."""
        pass

    @abstractmethod
    def format_error(self, error: str):
        """Format error message for output."""
        pass

    def format_success(self, message: str):
        """Format success message for output."""
        console.print(f"[green]✓[/green] {message}")

    def format_warning(self, message: str):
        """Format warning message for output."""
        console.print(f"[yellow]⚠[/yellow] {message}")

    def format_info(self, message: str):
        """Format info message for output."""
        console.print(f"[blue]ℹ[/blue] {message}")

    def _format_timestamp(self, timestamp: Optional[int]) -> str:
        """Format a unix timestamp, showing a dash for unset values."""
        if not timestamp:
            return "-"
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")

    def _format_bytes(self, bytes: int) -> str:
        """Format bytes in human-readable format."""
        for unit in ["B", "KB", "MB", "GB", "TB"]:
            if bytes < 1024.0:
                return f"{bytes:.1f} {unit}"
            bytes /= 1024.0
        return f"{bytes:.1f} PB"
