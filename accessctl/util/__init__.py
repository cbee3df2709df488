"""
Utility helpers for accessctl.
"""

from .config import ENV_PREFIX, get_config_value, get_float_config, load_config_file

__all__ = [
    "ENV_PREFIX",
    "get_config_value",
    "get_float_config",
    "load_config_file",
]
