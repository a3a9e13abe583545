#!/usr/bin/env python3
"""
roster_config.py - Settings for the roster share tools

Settings are read from a small YAML file. Every key is optional; missing
keys keep their defaults.

Example (config/roster_share.yaml):
    share_origin: https://example.org
    share_path: /roster/
    estimate_header_bits: 16
    estimate_bits_per_chara: 300
    strict: false
    placeholder_rarity: 3

Usage:
    from roster_config import load_config

    config = load_config()                       # defaults
    config = load_config('config/roster_share.yaml')
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


class ConfigError(ValueError):
    """Configuration file is unreadable or has bad keys/values."""
    pass


@dataclass
class RosterConfig:
    """Share tool settings."""
    share_origin: str = 'http://localhost:5173'
    share_path: str = '/'
    # Length estimate model: ceil((header + n * per_chara) / 6)
    estimate_header_bits: int = 16
    estimate_bits_per_chara: int = 300
    strict: bool = False
    placeholder_rarity: int = 3

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RosterConfig':
        """Build config from a mapping, checking key names and value types."""
        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        defaults = cls()
        values = {}
        for name, value in data.items():
            expected = type(getattr(defaults, name))
            # bool is an int subclass; keep them apart
            if expected is int and isinstance(value, bool):
                raise ConfigError(f"Config key '{name}' must be int, got bool")
            if not isinstance(value, expected):
                raise ConfigError(
                    f"Config key '{name}' must be {expected.__name__}, "
                    f"got {type(value).__name__}")
            values[name] = value

        config = cls(**values)
        if config.estimate_header_bits < 0 or config.estimate_bits_per_chara < 0:
            raise ConfigError("Estimate bit counts must be non-negative")
        return config


def load_config(path: Optional[Union[str, Path]] = None) -> RosterConfig:
    """Load settings from a YAML file, or return defaults when path is None."""
    if path is None:
        return RosterConfig()

    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    # Empty file
    if data is None:
        return RosterConfig()
    return RosterConfig.from_dict(data)
