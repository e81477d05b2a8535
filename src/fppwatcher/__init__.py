"""
FPP Watcher Metrics

Tiered rollup storage for lighting-controller telemetry collectors.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

__version__ = "0.1.0"
__author__ = "FPP Watcher Developers"

__all__ = ["__version__", "__author__"]
