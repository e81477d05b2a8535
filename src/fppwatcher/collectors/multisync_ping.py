# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Multi-sync ping collector.

Pings every remote in the multi-sync group, tracks RFC 3550 jitter per host
and rolls buckets up into one entry per host.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..metrics.numeric import round_half_up, safe_float
from ..metrics.quality import JitterTracker
from ..metrics.values import Aggregate, Scalar, SeriesAccumulator
from .base import BaseMetricsCollector

logger = logging.getLogger(__name__)


class MultiSyncPingCollector(BaseMetricsCollector):
    """Latency and jitter to each multi-sync remote."""

    name = "multisync_ping"
    default_raw_retention_hours = 25
    dimension_field = "hostname"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.jitter = JitterTracker()

    def record_ping_results(
        self,
        results: Iterable[Dict[str, Any]],
        timestamp: Optional[int] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Store one round of ping results.

        Args:
            results: Items with ``hostname``, ``address``, ``latency`` and
                ``success``; items without an address are skipped
            timestamp: Check time shared by the whole round (defaults to now)

        Returns:
            Per-host summary including the computed jitter
        """
        check_time = timestamp if timestamp is not None else self.now()
        summary: Dict[str, Dict[str, Any]] = {}
        batch = []

        for result in results:
            hostname = result.get("hostname", "")
            address = result.get("address", "")
            if not address:
                continue

            success = bool(result.get("success"))
            latency = safe_float(result.get("latency"))
            jitter = None
            if success and latency is not None:
                jitter = self.jitter.update(hostname, latency)

            summary[hostname] = {
                "hostname": hostname,
                "address": address,
                "latency": latency,
                "jitter": jitter,
                "success": success,
            }
            batch.append({
                "timestamp": check_time,
                "hostname": hostname,
                "address": address,
                "latency": latency,
                "jitter": jitter,
                "status": "success" if success else "failure",
            })

        if batch:
            self.write_raw(batch)
        return summary

    def get_raw_metrics(self, hours_back: float = 24, hostname: Optional[str] = None) -> Dict[str, Any]:
        """Raw samples from the last ``hours_back`` hours, optionally for one host."""
        end = self.now()
        start = end - int(hours_back * 3600)

        data = [
            entry
            for entry in self.read_raw(max(start - 1, 0))
            if start <= entry["timestamp"] <= end
            and (hostname is None or entry.get("hostname", "") == hostname)
        ]

        result: Dict[str, Any] = {
            "success": True,
            "count": len(data),
            "data": data,
            "period": {"start": start, "end": end, "hours": hours_back},
        }
        if hostname is not None:
            result["hostname"] = hostname
        return result

    def aggregate_metrics(self, entries: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        """Per-host latency, jitter and success statistics for a bucket."""
        if not entries:
            return None

        by_host: Dict[str, Dict[str, Any]] = {}
        for entry in entries:
            hostname = entry.get("hostname", "unknown")
            host = by_host.get(hostname)
            if host is None:
                host = by_host[hostname] = {
                    "address": entry.get("address", ""),
                    "latency": SeriesAccumulator(weighted=self.weighted_averages),
                    "jitter": SeriesAccumulator(weighted=self.weighted_averages),
                    "success_count": 0,
                    "failure_count": 0,
                }

            if "sample_count" in entry:
                self._fold_rollup(host, entry)
                continue

            latency = safe_float(entry.get("latency"))
            if latency is not None:
                host["latency"].add(Scalar(latency))
            jitter = safe_float(entry.get("jitter"))
            if jitter is not None:
                host["jitter"].add(Scalar(jitter))

            if entry.get("status") == "success":
                host["success_count"] += 1
            else:
                host["failure_count"] += 1

        aggregated = []
        for hostname in sorted(by_host):
            host = by_host[hostname]
            latency = host["latency"].summary(3)
            jitter_avg = host["jitter"].mean()

            aggregated.append({
                "hostname": hostname,
                "address": host["address"],
                "sample_count": host["success_count"] + host["failure_count"],
                "success_count": host["success_count"],
                "failure_count": host["failure_count"],
                "min_latency": latency["min"] if latency else None,
                "max_latency": latency["max"] if latency else None,
                "avg_latency": latency["avg"] if latency else None,
                "avg_jitter": round_half_up(jitter_avg, 2) if jitter_avg is not None else None,
                "max_jitter": round_half_up(host["jitter"].max, 2) if jitter_avg is not None else None,
            })

        return aggregated

    @staticmethod
    def _fold_rollup(host: Dict[str, Any], entry: Dict[str, Any]) -> None:
        """Merge a finer-tier rollup entry into a host accumulator."""
        success = int(entry.get("success_count") or 0)
        host["success_count"] += success
        host["failure_count"] += int(entry.get("failure_count") or 0)
        weight = max(success, 1)

        avg = safe_float(entry.get("avg_latency"))
        if avg is not None:
            host["latency"].add(Aggregate(
                avg=avg,
                min=safe_float(entry.get("min_latency"), avg),
                max=safe_float(entry.get("max_latency"), avg),
                samples=weight,
            ))

        jitter = safe_float(entry.get("avg_jitter"))
        if jitter is not None:
            host["jitter"].add(Aggregate(
                avg=jitter,
                min=jitter,
                max=safe_float(entry.get("max_jitter"), jitter),
                samples=weight,
            ))

    def aggregate_bucket(self, entries, bucket_start, interval):
        aggregated = self.aggregate_metrics(entries)
        if not aggregated:
            return None
        header = self.bucket_header(bucket_start, interval)
        return [{**header, **host} for host in aggregated]

    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        return entry.get("hostname", "") == dimension
