# backend/smartcity/utils/__init__.py

"""
Utility package for the application.

Re-exports the configuration helpers so callers can use `smartcity.utils`
directly.
"""

import logging

from .config import ConfigError, load_config, DEFAULT_CONFIG, merge_dicts, apply_env_overrides

logger = logging.getLogger(__name__)

__all__ = [
    'ConfigError',
    'load_config',
    'DEFAULT_CONFIG',
    'merge_dicts',
    'apply_env_overrides',
]
