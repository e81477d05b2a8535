# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ping latency collector.

Raw entries look like ``{"timestamp", "host", "latency", "status"}``. Each
bucket rolls up into a single entry with latency statistics, success and
failure counts and a per-host sample count.
"""

import logging
from typing import Any, Dict, List, Optional

from ..metrics.numeric import safe_float
from ..metrics.values import Aggregate, Scalar, SeriesAccumulator
from .base import BaseMetricsCollector

logger = logging.getLogger(__name__)


class PingCollector(BaseMetricsCollector):
    """Latency to the configured ping target."""

    name = "ping"
    default_raw_retention_hours = 25

    def record_ping(
        self,
        host: str,
        latency: Optional[float],
        success: bool,
        timestamp: Optional[int] = None,
    ) -> bool:
        """Store a single ping result."""
        return self.write_raw({
            "timestamp": timestamp if timestamp is not None else self.now(),
            "host": host,
            "latency": latency,
            "status": "success" if success else "failure",
        })

    def aggregate_metrics(self, entries: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Summarize ping entries.

        Rollup entries from a finer tier are folded in with their latency
        weighted by ``success_count`` and their counters summed.

        Returns:
            Aggregate fields, or None for an empty input
        """
        if not entries:
            return None

        latency = SeriesAccumulator(weighted=self.weighted_averages)
        hosts: Dict[str, int] = {}
        sample_count = 0
        success_count = 0
        failure_count = 0

        for entry in entries:
            if "sample_count" in entry:
                sample_count += int(entry.get("sample_count") or 0)
                success_count += int(entry.get("success_count") or 0)
                failure_count += int(entry.get("failure_count") or 0)
                for host, count in (entry.get("hosts") or {}).items():
                    hosts[host] = hosts.get(host, 0) + int(count)

                avg = safe_float(entry.get("avg_latency"))
                if avg is not None:
                    latency.add(Aggregate(
                        avg=avg,
                        min=safe_float(entry.get("min_latency"), avg),
                        max=safe_float(entry.get("max_latency"), avg),
                        samples=max(int(entry.get("success_count") or 0), 1),
                    ))
                continue

            sample_count += 1
            value = safe_float(entry.get("latency"))
            if value is not None:
                latency.add(Scalar(value))

            host = entry.get("host")
            if host is not None:
                hosts[host] = hosts.get(host, 0) + 1

            status = entry.get("status")
            if status == "success":
                success_count += 1
            elif status == "failure":
                failure_count += 1

        if failure_count == 0:
            failure_count = sample_count - success_count

        summary = latency.summary(3)
        return {
            "min_latency": summary["min"] if summary else None,
            "max_latency": summary["max"] if summary else None,
            "avg_latency": summary["avg"] if summary else None,
            "sample_count": sample_count,
            "success_count": success_count,
            "failure_count": failure_count,
            "hosts": hosts,
        }

    def aggregate_bucket(self, entries, bucket_start, interval):
        aggregated = self.aggregate_metrics(entries)
        if aggregated is None:
            return None
        return {**self.bucket_header(bucket_start, interval), **aggregated}

    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        if "hosts" in entry:
            return dimension in (entry.get("hosts") or {})
        return entry.get("host") == dimension
