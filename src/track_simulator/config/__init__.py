"""Configuration loading and validation utilities."""

from .loader import ConfigError, load_simulation_config, normalize_config_dict, flatten_config

__all__ = [
    "ConfigError",
    "flatten_config",
    "load_simulation_config",
    "normalize_config_dict",
]
