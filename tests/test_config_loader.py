from __future__ import annotations

from pathlib import Path
import math
import sys

sys.path.insert(0, "src")

import pytest
import yaml

from track_simulator.config import (
    ConfigError,
    flatten_config,
    load_simulation_config,
    normalize_config_dict,
)
from track_simulator.core.engine import get_default_simulation_params, run_simulation


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def test_nested_config_is_flattened(tmp_path: Path) -> None:
    cfg_path = _write(
        tmp_path / "case.yml",
        {
            "case_name": "steep",
            "physics": {"gravity": 12.0, "track_curvature": 0.01},
            "friction": {"enabled": True, "coefficient": 0.2},
            "run": {"duration_s": 0.5},
        },
    )
    flat = load_simulation_config(cfg_path)
    assert flat["gravity"] == 12.0
    assert flat["track_curvature"] == 0.01
    assert flat["friction_enabled"] is True
    assert flat["friction_coefficient"] == 0.2
    assert flat["duration_s"] == 0.5
    assert flat["case_name"] == "steep"
    # untouched sections fall back to the defaults
    assert flat["viewport_width"] == 800.0

    df = run_simulation(flat)
    assert len(df) == math.ceil(flat["duration_s"] / flat["frame_dt_s"]) + 1


def test_defaults_match_engine_defaults() -> None:
    flat = flatten_config(normalize_config_dict({}, filename="empty.yml"))
    defaults = get_default_simulation_params()
    for key, value in flat.items():
        assert defaults[key] == value


def test_flat_keys_are_accepted() -> None:
    cfg = normalize_config_dict({"gravity": 3.0, "friction_enabled": True}, filename="flat.yml")
    assert cfg.physics.gravity == 3.0
    assert cfg.friction.enabled is True


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    cfg_path = tmp_path / "empty.yml"
    cfg_path.write_text("", encoding="utf-8")
    flat = load_simulation_config(cfg_path)
    assert flat["gravity"] == 9.8
    assert "case_name" not in flat


def test_json_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "case.json"
    cfg_path.write_text('{"physics": {"mass": 2.0}}', encoding="utf-8")
    assert load_simulation_config(cfg_path)["mass"] == 2.0


@pytest.mark.parametrize(
    "cfg, fragment",
    [
        ({"physics": {"gravity": -1.0}}, "gravity"),
        ({"physics": {"mass": 0.0}}, "mass"),
        ({"friction": {"coefficient": -0.1}}, "coefficient"),
        ({"run": {"frame_dt_s": 0.0}}, "frame_dt_s"),
        ({"viewport": {"height": 100.0, "bottom_margin": 150.0}}, "bottom_margin"),
        ({"physics": {"gravty": 9.8}}, "gravty"),
    ],
)
def test_invalid_values_raise(cfg, fragment) -> None:
    with pytest.raises(ConfigError) as excinfo:
        normalize_config_dict(cfg, filename="bad.yml")
    assert "bad.yml" in str(excinfo.value)
    assert fragment in str(excinfo.value)


def test_unsupported_extension(tmp_path: Path) -> None:
    cfg_path = tmp_path / "case.toml"
    cfg_path.write_text("gravity = 1.0", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_simulation_config(cfg_path)


def test_non_mapping_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "list.yml"
    cfg_path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_simulation_config(cfg_path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_simulation_config(tmp_path / "nope.yml")


def test_shipped_configs_load() -> None:
    for name in ("default.yml", "drag.yml"):
        flat = load_simulation_config(Path("configs") / name)
        assert flat["track_curvature"] == 0.005
