# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Table formatter using Rich for terminal output.
"""

from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from ...metrics.rollup import RollupReadResult, TierResult, TierStatus
from ...metrics.storage import RotationResult
from .base import BaseFormatter

console = Console()

STATUS_STYLES = {
    TierStatus.FLUSHED: "green",
    TierStatus.IDLE: "dim",
    TierStatus.THROTTLED: "yellow",
    TierStatus.FAILED: "bold red",
}

# Columns shown for rollup entries, by first matching field
METRIC_COLUMNS = [
    ("hostname", "Host"),
    ("avg_latency", "Avg Latency"),
    ("latency_avg", "Avg Latency"),
    ("min_latency", "Min"),
    ("max_latency", "Max"),
    ("avg_jitter", "Avg Jitter"),
    ("jitter_avg", "Avg Jitter"),
    ("packet_loss_pct", "Loss %"),
    ("overall_quality", "Quality"),
    ("sample_count", "Samples"),
]


class TableFormatter(BaseFormatter):
    """Format output as tables using Rich."""

    def format_rollup_results(self, results: Dict[str, List[TierResult]]):
        """Format rollup results as a table."""
        table = Table(title="Rollup Pass", show_header=True, header_style="bold magenta")
        table.add_column("Collector", style="cyan", no_wrap=True)
        table.add_column("Tier")
        table.add_column("Status")
        table.add_column("Buckets", justify="right")
        table.add_column("Entries", justify="right")
        table.add_column("Error")

        for name, tier_results in results.items():
            for result in tier_results:
                style = STATUS_STYLES.get(result.status, "")
                table.add_row(
                    name,
                    result.tier,
                    f"[{style}]{result.status.value}[/{style}]" if style else result.status.value,
                    str(result.buckets),
                    str(result.entries),
                    result.error or "",
                )

        console.print(table)

    def format_rotation_results(self, results: Dict[str, RotationResult]):
        """Format rotation results as a table."""
        table = Table(title="Raw Log Rotation", show_header=True, header_style="bold magenta")
        table.add_column("Collector", style="cyan", no_wrap=True)
        table.add_column("Purged", justify="right")
        table.add_column("Kept", justify="right")

        for name, result in results.items():
            table.add_row(name, str(result.purged), str(result.kept))

        console.print(table)

    def format_metrics(self, collector: str, result: RollupReadResult):
        """Format rollup data as a table."""
        tier_info = result.tier_info or {}
        title = f"{collector} metrics ({tier_info.get('label', result.tier)})"
        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("Time", style="cyan", no_wrap=True)

        columns = []
        seen_labels = set()
        for key, label in METRIC_COLUMNS:
            if label in seen_labels:
                continue
            if any(key in entry for entry in result.data):
                columns.append(key)
                seen_labels.add(label)
                table.add_column(label, justify="right")

        for entry in result.data:
            row = [self._format_timestamp(entry.get("timestamp"))]
            for key in columns:
                value = entry.get(key)
                row.append("-" if value is None else str(value))
            table.add_row(*row)

        console.print(table)
        console.print(f"[dim]{result.count} entries[/dim]")

    def format_tiers(self, collector: str, tiers: Dict[str, Dict[str, Any]]):
        """Format tier information as a table."""
        table = Table(title=f"{collector} rollup tiers", show_header=True, header_style="bold magenta")
        table.add_column("Tier", style="cyan", no_wrap=True)
        table.add_column("Interval")
        table.add_column("Retention")
        table.add_column("Label")
        table.add_column("Gzip")
        table.add_column("File", justify="right")

        for name, info in tiers.items():
            size = self._format_bytes(info["file_size"]) if info["file_exists"] else "[dim]missing[/dim]"
            table.add_row(
                name,
                info["interval_label"],
                info["retention_label"],
                info["label"],
                "yes" if info.get("compressed") else "no",
                size,
            )

        console.print(table)

    def format_state(self, collector: str, state: Dict[str, Dict[str, int]]):
        """Format rollup cursors as a table."""
        table = Table(title=f"{collector} rollup state", show_header=True, header_style="bold magenta")
        table.add_column("Tier", style="cyan", no_wrap=True)
        table.add_column("Last Processed")
        table.add_column("Last Bucket End")
        table.add_column("Last Rollup")

        for name, cursor in state.items():
            table.add_row(
                name,
                self._format_timestamp(cursor["last_processed"]),
                self._format_timestamp(cursor["last_bucket_end"]),
                self._format_timestamp(cursor["last_rollup"]),
            )

        console.print(table)

    def format_error(self, error: str):
        """Format error message."""
        console.print(f"[bold red]Error:[/bold red] {error}")
