"""Data loading and configuration management."""

from ownership_snapshot.data.loader import DEFAULT_CONFIG_PATH, load_config, load_raw_config

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "load_raw_config",
]
