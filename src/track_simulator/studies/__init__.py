"""
Studies framework: reproducible numerical and parameter studies.

All simulations are executed via `track_simulator.core.engine.run_simulation`
(or an injected replacement for tests), so the studies never reach into the
controller internals.
"""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List
import copy
import json
import re
import subprocess


# ----------------------------
# Path helpers (dot notation)
# ----------------------------

_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _split_path(path: str) -> List[str]:
    """
    Split parameter paths:
      - 'gravity' -> ['gravity']
      - 'friction.coefficient' -> ['friction', 'coefficient']
    """
    keys = [part.strip() for part in path.split(".")]
    for key in keys:
        if not _KEY_RE.fullmatch(key):
            raise ValueError(
                f"Invalid param path token: {key!r} (full path: {path!r}). "
                "Use dot notation, e.g. 'gravity' or 'friction.coefficient'."
            )
    return keys


def get_by_path(cfg: Dict[str, Any], path: str) -> Any:
    """Get cfg value using a dot path."""
    d: Any = cfg
    for key in _split_path(path):
        if not isinstance(d, dict) or key not in d:
            raise KeyError(f"Path '{path}' not found at key '{key}'")
        d = d[key]
    return d


def set_by_path(cfg: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    Return a deep-copied cfg where the nested path is set to `value`.
    Creates intermediate dicts as needed.
    """
    new_cfg = copy.deepcopy(cfg)
    keys = _split_path(path)
    d = new_cfg
    for key in keys[:-1]:
        if not isinstance(d.get(key), dict):
            d[key] = {}
        d = d[key]
    d[keys[-1]] = value
    return new_cfg


# ----------------------------
# Reproducibility utilities
# ----------------------------

def get_git_hash() -> str:
    """Return current git hash (or 'unknown')."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
        return proc.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        return "unknown"


def _json_default(obj: Any) -> Any:
    if is_dataclass(obj):
        return asdict(obj)
    return str(obj)


def save_study_metadata(output_dir: Path, *, metadata: Dict[str, Any]) -> None:
    """Write run_metadata.json (git hash + study settings) to output_dir."""
    output_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "git_hash": get_git_hash(),
        **metadata,
    }
    (output_dir / "run_metadata.json").write_text(
        json.dumps(payload, indent=2, default=_json_default),
        encoding="utf-8",
    )


# ----------------------------
# Simulation config helpers
# ----------------------------

def merge_with_engine_defaults(cfg_overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge user overrides with engine defaults, returning a full flat config.

    Mirrors what `run_simulation()` does internally, so studies can read
    base values (e.g. the default gravity) before running anything.
    """
    from track_simulator.core.engine import get_default_simulation_params

    base = get_default_simulation_params()
    base.update(copy.deepcopy(cfg_overrides))
    return base


def parse_floats_csv(s: str) -> List[float]:
    """Parse '1,2,3' or '1 2 3' into list of floats."""
    parts = re.split(r"[,\s]+", s.strip())
    return [float(p) for p in parts if p]
