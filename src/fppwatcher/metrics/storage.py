# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Append-only line storage for metric streams.

Every line is ``[YYYY-MM-DD HH:MM:SS] {json}`` with the bracketed time taken
from the entry's own ``timestamp``. Writers hold an exclusive ``flock`` while
appending and readers hold a shared one, so concurrent producers never
interleave partial lines and a reader never sees half of a batch.

Files ending in ``.gz`` hold the same lines inside a gzip stream. Each append
adds one gzip member, which readers decode as a single continuous stream.
"""

import fcntl
import gzip
import json
import logging
import os
import re
import shutil
import time
import zlib
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

# Top-level timestamp as written by format_line (first key of the object)
TIMESTAMP_PATTERN = re.compile(r'^\s*(?:\[[^\]]*\]\s*)?\{\s*"timestamp"\s*:\s*(\d+)\s*[,}]')
LINE_PATTERN = re.compile(r'^\[[^\]]*\]\s+(.+)$')

# Attempts to reopen when rotation swaps the file under a waiting writer
MAX_REOPEN_ATTEMPTS = 5

GZIP_COMPRESSLEVEL = 6

PathLike = Union[str, Path]


@dataclass
class RotationResult:
    """Outcome of a retention pass over one file."""

    purged: int = 0
    kept: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return asdict(self)


def is_compressed(path: PathLike) -> bool:
    """Whether ``path`` is stored as a gzip stream."""
    return str(path).endswith(".gz")


def normalize_timestamp(value: Any) -> Optional[int]:
    """
    Coerce a timestamp to whole seconds.

    Integers pass through and integral floats (``100.0``) are converted.
    Anything else, including booleans and fractional seconds, gives None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def format_line(entry: Dict[str, Any]) -> str:
    """Encode one entry as a log line, including the trailing newline."""
    stamp = datetime.fromtimestamp(entry["timestamp"]).strftime("%Y-%m-%d %H:%M:%S")
    payload = json.dumps(entry, separators=(",", ":"))
    return f"[{stamp}] {payload}\n"


def parse_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Decode one log line.

    Accepts the bracketed format as well as bare JSON objects. Returns None
    for blank, truncated or otherwise unusable lines and for objects without
    an integer ``timestamp``.
    """
    text = line.strip()
    if not text:
        return None

    match = LINE_PATTERN.match(text)
    if match:
        text = match.group(1).strip()
    elif not text.startswith("{"):
        return None

    try:
        entry = json.loads(text)
    except ValueError:
        return None

    if not isinstance(entry, dict):
        return None
    timestamp = entry.get("timestamp")
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        return None
    return entry


def extract_timestamp(line: str) -> Optional[int]:
    """
    Pull the top-level ``timestamp`` out of a raw line.

    Lines written by ``format_line`` lead with the timestamp and are matched
    without decoding. Anything else is decoded in full so a nested
    ``timestamp`` key is never mistaken for the entry's own.
    """
    match = TIMESTAMP_PATTERN.match(line)
    if match:
        return int(match.group(1))
    entry = parse_line(line)
    if entry is None:
        return None
    return entry["timestamp"]


def _iter_lines(handle: BinaryIO, compressed: bool) -> Iterator[str]:
    """Decoded lines of an open binary file, unwrapping gzip if needed."""
    if not compressed:
        for raw in handle:
            yield raw.decode("utf-8", errors="replace")
        return

    stream = gzip.GzipFile(fileobj=handle, mode="rb")
    try:
        for raw in stream:
            yield raw.decode("utf-8", errors="replace")
    except (EOFError, zlib.error) as e:
        logger.warning(f"Truncated or corrupt gzip data in {handle.name}: {e}")
    finally:
        stream.close()


class MetricsStorage:
    """Append, read and rotate line-oriented metric files."""

    def append(self, path: PathLike, entries: Iterable[Dict[str, Any]]) -> bool:
        """
        Append a batch of entries under an exclusive lock.

        Entries without a ``timestamp`` are stamped with the current time and
        integral float timestamps are stored as integers. Entries that cannot
        be stored (fractional or non-numeric timestamps, values JSON cannot
        encode) are skipped with a warning; the rest of the batch is written.

        Args:
            path: Metrics file (created with its parent directory if missing)
            entries: Entries to write

        Returns:
            True if the whole batch was written
        """
        path = Path(path)
        lines = []
        skipped = 0
        for entry in entries:
            line = self._encode(path, entry)
            if line is None:
                skipped += 1
            else:
                lines.append(line)

        if not lines:
            return skipped == 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handle = self._open_locked_for_append(path)
        except OSError as e:
            logger.warning(f"Unable to open {path} for append: {e}")
            return False

        payload = "".join(lines).encode("utf-8")
        try:
            if is_compressed(path):
                with gzip.GzipFile(fileobj=handle, mode="ab", compresslevel=GZIP_COMPRESSLEVEL) as stream:
                    stream.write(payload)
            else:
                handle.write(payload)
            handle.flush()
        except OSError as e:
            logger.error(f"Failed writing {len(lines)} entries to {path}: {e}")
            return False
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            handle.close()

        return skipped == 0

    def _encode(self, path: Path, entry: Dict[str, Any]) -> Optional[str]:
        """Format one entry for ``path``, or None if it cannot be stored."""
        if not isinstance(entry, dict):
            logger.warning(f"Skipping non-object entry for {path}: {entry!r}")
            return None

        if "timestamp" not in entry:
            timestamp = int(time.time())
        else:
            timestamp = normalize_timestamp(entry["timestamp"])
            if timestamp is None:
                logger.warning(f"Skipping entry for {path} with invalid timestamp {entry['timestamp']!r}")
                return None

        # Leading key keeps TIMESTAMP_PATTERN on the fast path
        entry = {"timestamp": timestamp, **{k: v for k, v in entry.items() if k != "timestamp"}}

        try:
            return format_line(entry)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.warning(f"Skipping entry for {path} that cannot be encoded: {e}")
            return None

    def _open_locked_for_append(self, path: Path) -> BinaryIO:
        """Open ``path`` for append and lock it, following rotation swaps."""
        for _ in range(MAX_REOPEN_ATTEMPTS):
            handle = open(path, "ab")
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                current = os.stat(path)
            except FileNotFoundError:
                handle.close()
                continue
            except OSError:
                handle.close()
                raise

            if os.fstat(handle.fileno()).st_ino == current.st_ino:
                return handle

            # Replaced while we waited for the lock
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            handle.close()

        raise OSError(f"{path} kept changing while acquiring lock")

    def read(self, path: PathLike, since: int = 0) -> List[Dict[str, Any]]:
        """
        Read entries newer than ``since``, sorted by timestamp.

        When ``since`` is positive the timestamp is matched on the raw line
        first and older lines are skipped before JSON decoding.

        Args:
            path: Metrics file
            since: Only return entries with ``timestamp > since``

        Returns:
            Entries in ascending timestamp order (empty if unreadable)
        """
        path = Path(path)
        if not path.exists():
            return []

        entries = []
        try:
            with open(path, "rb") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
                try:
                    for line in _iter_lines(handle, is_compressed(path)):
                        if since > 0:
                            timestamp = extract_timestamp(line)
                            if timestamp is None or timestamp <= since:
                                continue

                        entry = parse_line(line)
                        if entry is None or entry["timestamp"] <= since:
                            continue
                        entries.append(entry)
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"Unable to read {path}: {e}")
            return []

        entries.sort(key=lambda entry: entry["timestamp"])
        return entries

    def rotate(
        self,
        path: PathLike,
        retention_seconds: int,
        now: Optional[int] = None,
        backup_suffix: str = ".old",
    ) -> RotationResult:
        """
        Drop entries older than the retention period.

        The file is only rewritten when something was purged. The previous
        contents are kept as ``<file><backup_suffix>`` (replacing any earlier
        backup) and the survivors are moved into place with an atomic rename,
        so readers see either the old file or the new one. Gzip files are
        rewritten as a single compressed stream.

        Args:
            path: Metrics file
            retention_seconds: Keep entries with ``timestamp >= now - retention``
            now: Current time (defaults to ``time.time()``)
            backup_suffix: Suffix of the backup file

        Returns:
            Purged and kept line counts
        """
        path = Path(path)
        result = RotationResult()
        if not path.exists():
            return result

        if now is None:
            now = int(time.time())
        cutoff = now - retention_seconds

        try:
            handle = open(path, "rb")
        except OSError as e:
            logger.warning(f"Unable to open {path} for rotation: {e}")
            return result

        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)

            kept_lines = []
            purged = 0
            for line in _iter_lines(handle, is_compressed(path)):
                timestamp = extract_timestamp(line)
                if timestamp is None:
                    continue
                if timestamp >= cutoff:
                    kept_lines.append(line if line.endswith("\n") else line + "\n")
                else:
                    purged += 1

            result.kept = len(kept_lines)
            if purged == 0:
                return result

            self._swap_in(path, kept_lines, backup_suffix)
            result.purged = purged
            logger.info(f"Metrics purge ({path}): removed {purged} old entries, kept {len(kept_lines)} recent entries.")
        except OSError as e:
            logger.error(f"Rotation of {path} failed: {e}")
            return RotationResult(kept=result.kept)
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            handle.close()

        return result

    def migrate_to_compressed(self, plain_path: PathLike, compressed_path: PathLike) -> int:
        """
        Move a plain metrics file into a gzip file that does not exist yet.

        Nothing happens when the plain file is missing or the gzip file is
        already there. An empty plain file is simply removed.

        Returns:
            Number of entries moved
        """
        plain_path = Path(plain_path)
        compressed_path = Path(compressed_path)
        if not plain_path.exists() or compressed_path.exists():
            return 0

        entries = self.read(plain_path)
        if entries and not self.append(compressed_path, entries):
            logger.error(f"Unable to migrate {plain_path} to {compressed_path}")
            return 0

        try:
            plain_path.unlink()
        except OSError as e:
            logger.warning(f"Unable to remove {plain_path} after migration: {e}")

        if entries:
            logger.info(f"Migrated {plain_path.name} to compressed format: {len(entries)} entries")
        return len(entries)

    def _swap_in(self, path: Path, lines: List[str], backup_suffix: str) -> None:
        """Back up ``path`` and atomically replace it with ``lines``."""
        temp_path = path.with_name(path.name + ".tmp")
        backup_path = path.with_name(path.name + backup_suffix)
        payload = "".join(lines).encode("utf-8")

        with open(temp_path, "wb") as temp:
            if is_compressed(path):
                with gzip.GzipFile(fileobj=temp, mode="wb", compresslevel=GZIP_COMPRESSLEVEL) as stream:
                    stream.write(payload)
            else:
                temp.write(payload)
            temp.flush()
            os.fsync(temp.fileno())

        try:
            backup_path.unlink()
        except FileNotFoundError:
            pass

        try:
            os.link(path, backup_path)
        except OSError:
            shutil.copy2(path, backup_path)

        os.replace(temp_path, path)
