# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for persisted rollup cursors.
"""

import json
import logging

from fppwatcher.metrics.state import RollupStateStore, TierCursor

TIERS = ["1min", "5min", "30min", "2hour"]


class TestRollupStateStore:
    """Test loading and saving cursor documents."""

    def test_missing_file_creates_fresh_state(self, tmp_path):
        """A missing file yields zeroed cursors written with 4-space indent."""
        path = tmp_path / "rollup-state.json"
        store = RollupStateStore(path, TIERS)

        state = store.load()

        assert list(state) == TIERS
        assert all(cursor == TierCursor() for cursor in state.values())
        text = path.read_text()
        assert '\n    "1min": {\n        "last_processed": 0,' in text
        assert json.loads(text)["2hour"] == {
            "last_processed": 0,
            "last_bucket_end": 0,
            "last_rollup": 0,
        }

    def test_save_and_load(self, tmp_path):
        store = RollupStateStore(tmp_path / "state.json", TIERS)
        state = store.load()
        state["1min"] = TierCursor(last_processed=119, last_bucket_end=120, last_rollup=130)
        assert store.save(state)

        loaded = store.load()
        assert loaded["1min"] == TierCursor(119, 120, 130)
        assert loaded["5min"] == TierCursor()

    def test_corrupt_file_rebuilt(self, tmp_path, caplog):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        store = RollupStateStore(path, TIERS)

        with caplog.at_level(logging.INFO):
            state = store.load()

        assert all(cursor == TierCursor() for cursor in state.values())
        assert "Corrupted rollup state file detected" in caplog.text
        assert json.loads(path.read_text())["1min"]["last_bucket_end"] == 0

    def test_non_object_document_rebuilt(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]")

        state = RollupStateStore(path, TIERS).load()

        assert list(state) == TIERS

    def test_missing_tiers_backfilled(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "1min": {"last_processed": 59, "last_bucket_end": 60, "last_rollup": 61},
        }))

        state = RollupStateStore(path, TIERS).load()

        assert state["1min"] == TierCursor(59, 60, 61)
        assert state["30min"] == TierCursor()

    def test_unknown_tiers_preserved(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "1min": {"last_processed": 1, "last_bucket_end": 2, "last_rollup": 3},
            "1day": {"last_processed": 4, "last_bucket_end": 5, "last_rollup": 6},
        }))
        store = RollupStateStore(path, TIERS)

        store.save(store.load())

        assert json.loads(path.read_text())["1day"] == {
            "last_processed": 4,
            "last_bucket_end": 5,
            "last_rollup": 6,
        }

    def test_invalid_fields_zeroed(self):
        cursor = TierCursor.from_dict({"last_processed": "x", "last_bucket_end": True, "last_rollup": 12.0})
        assert cursor == TierCursor(0, 0, 12)

    def test_reset(self, tmp_path):
        store = RollupStateStore(tmp_path / "state.json", TIERS)
        state = store.load()
        state["5min"].last_bucket_end = 300
        store.save(state)

        reset = store.reset()

        assert reset["5min"] == TierCursor()
        assert store.load()["5min"] == TierCursor()
