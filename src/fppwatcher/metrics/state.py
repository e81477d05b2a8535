# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Persistent rollup cursors.

One JSON document per metric family holds a cursor for every tier::

    {
        "1min": {"last_processed": 0, "last_bucket_end": 0, "last_rollup": 0},
        ...
    }
"""

import fcntl
import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Union

logger = logging.getLogger(__name__)

CURSOR_FIELDS = ("last_processed", "last_bucket_end", "last_rollup")


@dataclass
class TierCursor:
    """Progress of one tier through its source stream."""

    last_processed: int = 0
    last_bucket_end: int = 0
    last_rollup: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TierCursor":
        """Build from a stored mapping, zeroing missing or invalid fields."""
        values = {}
        for name in CURSOR_FIELDS:
            value = data.get(name, 0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                value = 0
            values[name] = int(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return asdict(self)


RollupState = Dict[str, TierCursor]


class RollupStateStore:
    """
    Load and save the cursor document for one metric family.

    Args:
        path: State file location
        tier_names: Tiers that must always have a cursor
    """

    def __init__(self, path: Union[str, Path], tier_names: Iterable[str]):
        self.path = Path(path)
        self.tier_names = list(tier_names)

    def fresh_state(self) -> RollupState:
        """Zeroed cursors for every tier."""
        return {name: TierCursor() for name in self.tier_names}

    def load(self) -> RollupState:
        """
        Load cursors, rebuilding them if the file is missing or corrupt.

        Tiers absent from the file get zeroed cursors. Entries for tiers this
        store does not know about are kept so they survive the next save.
        """
        if not self.path.exists():
            logger.debug(f"No rollup state at {self.path}, starting fresh")
            state = self.fresh_state()
            self.save(state)
            return state

        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
                try:
                    raw = handle.read()
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            data = json.loads(raw) if raw.strip() else None
        except (OSError, ValueError) as e:
            logger.warning(f"Unable to read rollup state {self.path}: {e}")
            data = None

        if not isinstance(data, dict) or not data:
            logger.info(f"Corrupted rollup state file detected: {self.path}. Rebuilding fresh state.")
            state = self.fresh_state()
            self.save(state)
            return state

        state: RollupState = {}
        for name, value in data.items():
            if isinstance(value, dict):
                state[name] = TierCursor.from_dict(value)
        for name in self.tier_names:
            state.setdefault(name, TierCursor())
        return state

    def save(self, state: RollupState) -> bool:
        """
        Write cursors under an exclusive lock.

        Returns:
            True on success
        """
        document = {name: cursor.to_dict() for name, cursor in state.items()}
        payload = json.dumps(document, indent=4)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            logger.error(f"Unable to open rollup state {self.path}: {e}")
            return False

        with os.fdopen(fd, "r+", encoding="utf-8") as handle:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                handle.seek(0)
                handle.truncate()
                handle.write(payload)
                handle.flush()
                return True
            except OSError as e:
                logger.error(f"Failed saving rollup state {self.path}: {e}")
                return False
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def reset(self) -> RollupState:
        """Replace the stored cursors with a zeroed state."""
        state = self.fresh_state()
        self.save(state)
        logger.info(f"Rollup state reset: {self.path}")
        return state
