# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared configuration and logging helpers.
"""

from .config import Config, get_config
from .logging import setup_logging

__all__ = ["Config", "get_config", "setup_logging"]
