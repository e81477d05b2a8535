# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""CLI command modules."""

from . import config, metrics, rollup, rotate, run, state, tiers

__all__ = ["config", "metrics", "rollup", "rotate", "run", "state", "tiers"]
