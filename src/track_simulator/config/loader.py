from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .models import SimulationConfig, format_validation_error


class ConfigError(ValueError):
    pass


# Flat (engine) key -> (section, field)
_FLAT_KEYS = {
    "gravity": ("physics", "gravity"),
    "track_curvature": ("physics", "track_curvature"),
    "mass": ("physics", "mass"),
    "friction_enabled": ("friction", "enabled"),
    "friction_coefficient": ("friction", "coefficient"),
    "start_x": ("run", "start_x"),
    "duration_s": ("run", "duration_s"),
    "frame_dt_s": ("run", "frame_dt_s"),
    "autostart": ("run", "autostart"),
    "viewport_width": ("viewport", "width"),
    "viewport_height": ("viewport", "height"),
    "bottom_margin": ("viewport", "bottom_margin"),
}


def load_simulation_config(path: Path) -> Dict[str, Any]:
    """Load, validate and flatten a YAML/JSON config file.

    The result is a flat dict accepted by
    :func:`track_simulator.core.engine.run_simulation`.
    """
    raw = _load_raw_config(path)
    cfg = normalize_config_dict(raw, filename=path.name)
    return flatten_config(cfg)


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml", ".json"}:
        data = yaml.safe_load(text)
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'.")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(config: Dict[str, Any], *, filename: str) -> SimulationConfig:
    """Validate a nested config mapping.

    Flat engine keys at the top level (``gravity: 12``) are accepted and
    moved into their section before validation.
    """
    raw = _nest_flat_keys(deepcopy(config))
    try:
        return SimulationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc


def _nest_flat_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    for flat_key, (section, field) in _FLAT_KEYS.items():
        if flat_key not in data:
            continue
        value = data.pop(flat_key)
        target = data.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"Section '{section}' must be a mapping")
        target.setdefault(field, value)
    return data


def flatten_config(cfg: SimulationConfig) -> Dict[str, Any]:
    """Convert a validated config into the engine's flat parameter dict."""
    dumped = cfg.model_dump()
    flat: Dict[str, Any] = {}
    for flat_key, (section, field) in _FLAT_KEYS.items():
        flat[flat_key] = dumped[section][field]
    if cfg.case_name:
        flat["case_name"] = cfg.case_name
    return flat
