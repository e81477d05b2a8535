# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Periodic rollup driver.

Runs every collector's rollup pass on a fixed interval and rotates the raw
logs on a slower one. File work runs in the default executor so the event
loop stays responsive.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

from .collectors.base import BaseMetricsCollector
from .metrics.rollup import TierResult
from .metrics.storage import RotationResult

logger = logging.getLogger(__name__)


class RollupScheduler:
    """
    Drive rollups and raw rotation for a set of collectors.

    A failing collector is logged and skipped; the others still run.

    Args:
        collectors: Collectors keyed by name
        interval: Seconds between rollup passes
        rotation_interval: Seconds between raw log rotations
        clock: Callable returning unix seconds
    """

    def __init__(
        self,
        collectors: Dict[str, BaseMetricsCollector],
        interval: float = 60,
        rotation_interval: float = 1800,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.collectors = collectors
        self.interval = interval
        self.rotation_interval = rotation_interval
        self.clock = clock or time.time
        self.last_rotation: Optional[float] = None

        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self.running:
            logger.warning("Rollup scheduler already running")
            return

        logger.info(f"Starting rollup scheduler (interval={self.interval}s, rotation_interval={self.rotation_interval}s, collectors={list(self.collectors)})")
        self.running = True
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self.running:
            return

        logger.info("Stopping rollup scheduler...")
        self.running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Rollup scheduler stopped")

    async def wait(self) -> None:
        """Block until the loop exits."""
        if self._task:
            await self._task

    async def run(self) -> None:
        """Main loop."""
        while self.running:
            try:
                await self.process_once()
            except asyncio.CancelledError:
                logger.info("Rollup scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"Error in rollup loop: {e}", exc_info=True)

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

    async def process_once(self) -> Dict[str, List[TierResult]]:
        """
        Run one rollup pass, rotating raw logs when they are due.

        Returns:
            Tier results keyed by collector name
        """
        loop = asyncio.get_running_loop()
        results = await loop.run_in_executor(None, self.run_rollups)

        now = self.clock()
        if self.last_rotation is None or now - self.last_rotation >= self.rotation_interval:
            await loop.run_in_executor(None, self.run_rotations)
            self.last_rotation = now

        return results

    def run_rollups(self) -> Dict[str, List[TierResult]]:
        """Process every collector's tiers once."""
        results = {}
        for name, collector in self.collectors.items():
            try:
                results[name] = collector.process_rollup()
            except Exception as e:
                logger.error(f"Rollup for {name} failed: {e}", exc_info=True)
                results[name] = []
        return results

    def run_rotations(self) -> Dict[str, RotationResult]:
        """Rotate every collector's raw log."""
        results = {}
        for name, collector in self.collectors.items():
            try:
                results[name] = collector.rotate_raw()
            except Exception as e:
                logger.error(f"Raw rotation for {name} failed: {e}", exc_info=True)
                results[name] = RotationResult()
        return results
