"""
Configuration utilities for accessctl.
Provides environment lookups and policy/config file loading.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


ENV_PREFIX = "ACCESSCTL_"


def get_config_value(key: str, default: Any = None,
                     cast_type: Optional[type] = None,
                     env_prefix: str = ENV_PREFIX) -> Any:
    """
    Get configuration value from environment or return default.
    Optionally cast to specified type.
    """
    env_key = f"{env_prefix}{key.upper()}"
    value = os.environ.get(env_key, default)

    if value is None or cast_type is None:
        return value

    try:
        return cast_type(value)
    except (ValueError, TypeError):
        return default


def get_float_config(key: str, default: float = 0.0,
                     env_prefix: str = ENV_PREFIX) -> float:
    """Get float configuration value."""
    return get_config_value(key, default, float, env_prefix)


def load_config_file(file_path: str) -> Any:
    """Load a JSON or YAML document from disk."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext == '.json':
            return json.load(f)
        elif file_ext in ('.yaml', '.yml'):
            return yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")
