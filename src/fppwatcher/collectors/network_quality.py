# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Multi-sync network quality collector.

Each sample records the HTTP response time to a remote, its RFC 3550 jitter
and the sync packet counters of the player and the remote. Rollups rate
latency, jitter and estimated packet loss per host.

Packet loss is estimated only while the player is playing. FPP sends a sync
packet every 10 frames, so the expected receive rate is ``(1000 / stepTime)
/ 10`` packets per second; the rate observed on the remote's counter is
compared against it. A counter that goes backwards restarts the window.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..metrics.numeric import round_half_up, safe_float
from ..metrics.quality import (
    JITTER_THRESHOLDS,
    LATENCY_THRESHOLDS,
    PACKET_LOSS_THRESHOLDS,
    JitterTracker,
    Quality,
    Thresholds,
    aggregate_latencies,
    jitter_from_latency_series,
    overall_quality,
    quality_rating,
)
from ..metrics.values import Aggregate, SeriesAccumulator
from .base import BaseMetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_SYNC_RATE = 2.0


def expected_sync_rate(step_time_ms: Optional[float]) -> float:
    """Sync packets per second expected for a sequence step time."""
    if step_time_ms is None or step_time_ms <= 0:
        return DEFAULT_SYNC_RATE
    return (1000 / step_time_ms) / 10


def estimate_packet_loss(receive_rate: float, expected_rate: float) -> float:
    """Loss percentage implied by the observed receive rate."""
    if receive_rate >= expected_rate:
        return 0.0
    if receive_rate >= 0.1:
        return round_half_up((1 - receive_rate / expected_rate) * 100, 1)
    return 100.0


class _PlayingWindow:
    """Packet counter window over the samples taken while playing."""

    def __init__(self):
        self.sample_count = 0
        self.step_times: List[float] = []
        self.first_timestamp: Optional[int] = None
        self.last_timestamp: Optional[int] = None
        self.first_packets: Optional[int] = None
        self.last_packets: Optional[int] = None

    def add(self, timestamp: int, packets: Optional[int], step_time: Optional[float]) -> None:
        self.sample_count += 1
        if step_time is not None:
            self.step_times.append(step_time)

        if packets is None:
            return

        if self.last_packets is not None and packets < self.last_packets:
            self.first_timestamp = timestamp
            self.first_packets = packets
            self.sample_count = 1
            self.step_times = [step_time] if step_time is not None else []
        elif self.first_packets is None:
            self.first_timestamp = timestamp
            self.first_packets = packets

        self.last_timestamp = timestamp
        self.last_packets = packets

    def estimate(self) -> Optional[Tuple[float, float]]:
        """``(receive_rate, packet_loss_pct)`` or None without a usable window."""
        if self.first_packets is None or self.last_packets is None:
            return None
        window = self.last_timestamp - self.first_timestamp
        if self.sample_count < 2 or window <= 0:
            return None

        delta = self.last_packets - self.first_packets
        if delta < 0:
            return None

        receive_rate = delta / window
        if self.step_times:
            ordered = sorted(self.step_times)
            expected = expected_sync_rate(ordered[len(ordered) // 2])
        else:
            expected = DEFAULT_SYNC_RATE

        return round_half_up(receive_rate, 1), estimate_packet_loss(receive_rate, expected)


class NetworkQualityCollector(BaseMetricsCollector):
    """
    Latency, jitter and packet loss between the player and its remotes.

    Args:
        latency_thresholds: Rating thresholds for latency (ms)
        jitter_thresholds: Rating thresholds for jitter (ms)
        packet_loss_thresholds: Rating thresholds for packet loss (%)
    """

    name = "network_quality"
    default_raw_retention_hours = 25
    dimension_field = "hostname"

    def __init__(
        self,
        *args,
        latency_thresholds: Thresholds = LATENCY_THRESHOLDS,
        jitter_thresholds: Thresholds = JITTER_THRESHOLDS,
        packet_loss_thresholds: Thresholds = PACKET_LOSS_THRESHOLDS,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.latency_thresholds = latency_thresholds
        self.jitter_thresholds = jitter_thresholds
        self.packet_loss_thresholds = packet_loss_thresholds
        self.jitter = JitterTracker()

    def _rate(self, value: Optional[float], thresholds: Thresholds) -> Optional[str]:
        if value is None:
            return None
        return quality_rating(value, thresholds).value

    def record_samples(
        self,
        player: Dict[str, Any],
        remotes: Iterable[Dict[str, Any]],
        timestamp: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Store one round of network quality samples.

        Args:
            player: ``packets_sent``, ``playing`` and ``step_time`` of the player
            remotes: Items with ``hostname``, ``address``, ``online``,
                ``latency``, ``packets_received`` and ``plugin_installed``;
                offline remotes are skipped
            timestamp: Sample time (defaults to now)

        Returns:
            The entries written
        """
        sample_time = timestamp if timestamp is not None else self.now()
        playing = bool(player.get("playing"))
        step_time = player.get("step_time") if playing else None

        entries = []
        for remote in remotes:
            if not remote.get("online", True):
                continue

            hostname = remote.get("hostname", "")
            latency = safe_float(remote.get("latency"))
            jitter = self.jitter.update(hostname, latency) if latency is not None else None

            entry: Dict[str, Any] = {
                "timestamp": sample_time,
                "hostname": hostname,
                "address": remote.get("address", ""),
                "latency": latency,
                "jitter": jitter,
                "playerPacketsSent": player.get("packets_sent", 0),
                "remotePacketsReceived": remote.get("packets_received"),
                "isPlaying": playing,
                "stepTime": step_time,
                "pluginInstalled": bool(remote.get("plugin_installed", False)),
            }
            if latency is not None:
                entry["latencyQuality"] = self._rate(latency, self.latency_thresholds)
            if jitter is not None:
                entry["jitterQuality"] = self._rate(jitter, self.jitter_thresholds)
            entries.append(entry)

        if entries:
            self.write_raw(entries)
        return entries

    def aggregate_metrics(self, entries: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        """Per-host quality summary for a bucket of samples or rollups."""
        if not entries:
            return None

        by_host: Dict[str, List[Dict[str, Any]]] = {}
        for entry in sorted(entries, key=lambda item: item.get("timestamp", 0)):
            by_host.setdefault(entry.get("hostname", "unknown"), []).append(entry)

        aggregated = []
        for hostname in sorted(by_host):
            host_entries = by_host[hostname]
            if any("sample_count" in entry for entry in host_entries):
                stats = self._combine_rollups(host_entries)
            else:
                stats = self._summarize_samples(host_entries)

            stats["overall_quality"] = (
                overall_quality([
                    stats["latency_quality"],
                    stats["jitter_quality"],
                    stats["packet_loss_quality"],
                ])
                or Quality.GOOD
            ).value

            aggregated.append({
                "hostname": hostname,
                "address": host_entries[0].get("address", ""),
                **stats,
            })

        return aggregated

    def _summarize_samples(self, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        latencies = []
        jitters = []
        window = _PlayingWindow()

        for entry in entries:
            latency = safe_float(entry.get("latency"))
            if latency is not None:
                latencies.append(latency)
            jitter = safe_float(entry.get("jitter"))
            if jitter is not None:
                jitters.append(jitter)
            if entry.get("isPlaying"):
                window.add(
                    entry["timestamp"],
                    entry.get("remotePacketsReceived"),
                    safe_float(entry.get("stepTime")),
                )

        stats: Dict[str, Any] = {"sample_count": len(entries)}
        stats.update(aggregate_latencies(latencies, precision=1))
        stats["latency_quality"] = self._rate(stats["latency_avg"], self.latency_thresholds)

        series = jitter_from_latency_series(latencies)
        if series is None and jitters:
            series = {
                "avg": round_half_up(sum(jitters) / len(jitters), 2),
                "max": round_half_up(max(jitters), 2),
            }
        stats["jitter_avg"] = series["avg"] if series else None
        stats["jitter_max"] = series["max"] if series else None
        stats["jitter_quality"] = self._rate(stats["jitter_avg"], self.jitter_thresholds)

        estimate = window.estimate()
        receive_rate, loss = estimate if estimate else (None, None)
        stats["packet_loss_pct"] = loss
        stats["packet_loss_quality"] = self._rate(loss, self.packet_loss_thresholds)
        stats["receive_rate"] = receive_rate
        return stats

    def _combine_rollups(self, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        latency = SeriesAccumulator(weighted=self.weighted_averages)
        jitter = SeriesAccumulator(weighted=self.weighted_averages)
        p95_values = []
        losses = []
        rates = []
        sample_count = 0

        for entry in entries:
            samples = int(entry.get("sample_count") or 0)
            sample_count += samples
            weight = max(samples, 1)

            avg = safe_float(entry.get("latency_avg"))
            if avg is not None:
                latency.add(Aggregate(
                    avg=avg,
                    min=safe_float(entry.get("latency_min"), avg),
                    max=safe_float(entry.get("latency_max"), avg),
                    samples=weight,
                ))
            p95 = safe_float(entry.get("latency_p95"))
            if p95 is not None:
                p95_values.append(p95)

            jitter_avg = safe_float(entry.get("jitter_avg"))
            if jitter_avg is not None:
                jitter.add(Aggregate(
                    avg=jitter_avg,
                    min=jitter_avg,
                    max=safe_float(entry.get("jitter_max"), jitter_avg),
                    samples=weight,
                ))

            loss = safe_float(entry.get("packet_loss_pct"))
            if loss is not None:
                losses.append(loss)
            rate = safe_float(entry.get("receive_rate"))
            if rate is not None:
                rates.append(rate)

        summary = latency.summary(1)
        jitter_avg = jitter.mean()
        loss = round_half_up(sum(losses) / len(losses), 1) if losses else None

        stats: Dict[str, Any] = {
            "sample_count": sample_count,
            "latency_min": summary["min"] if summary else None,
            "latency_max": summary["max"] if summary else None,
            "latency_avg": summary["avg"] if summary else None,
            "latency_p95": round_half_up(max(p95_values), 1) if p95_values else None,
        }
        stats["latency_quality"] = self._rate(stats["latency_avg"], self.latency_thresholds)
        stats["jitter_avg"] = round_half_up(jitter_avg, 2) if jitter_avg is not None else None
        stats["jitter_max"] = round_half_up(jitter.max, 2) if jitter_avg is not None else None
        stats["jitter_quality"] = self._rate(stats["jitter_avg"], self.jitter_thresholds)
        stats["packet_loss_pct"] = loss
        stats["packet_loss_quality"] = self._rate(loss, self.packet_loss_thresholds)
        stats["receive_rate"] = round_half_up(sum(rates) / len(rates), 1) if rates else None
        return stats

    def aggregate_bucket(self, entries, bucket_start, interval):
        aggregated = self.aggregate_metrics(entries)
        if not aggregated:
            return None
        header = self.bucket_header(bucket_start, interval)
        return [{**header, **host} for host in aggregated]

    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        return entry.get("hostname", "") == dimension

    def get_status(self) -> Dict[str, Any]:
        """Quality summary over the last hour of raw samples."""
        now = self.now()
        entries = self.read_raw(now - 3600)
        hosts = self.aggregate_metrics(entries) or []

        latencies = [host["latency_avg"] for host in hosts if host["latency_avg"] is not None]
        jitters = [host["jitter_avg"] for host in hosts if host["jitter_avg"] is not None]
        losses = [host["packet_loss_pct"] for host in hosts if host["packet_loss_pct"] is not None]

        if hosts:
            worst = overall_quality(Quality(host["overall_quality"]) for host in hosts)
            quality = worst.value if worst else Quality.GOOD.value
        else:
            quality = "unknown"

        return {
            "success": True,
            "timestamp": now,
            "hosts": hosts,
            "summary": {
                "avgLatency": round_half_up(sum(latencies) / len(latencies), 1) if latencies else None,
                "avgJitter": round_half_up(sum(jitters) / len(jitters), 2) if jitters else None,
                "avgPacketLoss": round_half_up(sum(losses) / len(losses), 2) if losses else None,
                "overallQuality": quality,
            },
        }
