# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fixtures for the metrics engine tests.
"""

import pytest

# Aligned to every standard tier interval (7200 s)
BASE_TIME = 1_699_999_200


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, now: int = BASE_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in ("WATCHER_CONFIG_DIR", "WATCHER_DATA_DIR", "WATCHER_DEBUG"):
        monkeypatch.delenv(name, raising=False)
