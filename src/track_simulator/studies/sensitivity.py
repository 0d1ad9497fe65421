"""
Generic (single-parameter) sensitivity study.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import yaml

from . import get_by_path, merge_with_engine_defaults, save_study_metadata, set_by_path

SimFunc = Callable[[Dict[str, Any]], pd.DataFrame]


def run_sensitivity_study(
    cfg_overrides: Dict[str, Any],
    *,
    param_path: str,
    values: Iterable[float],
    out_dir: Optional[Path] = None,
    save_timeseries: bool = False,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """
    Sweep one parameter (param_path) over `values` and summarize the response.

    Reported per run: peak speed, final position, thermal energy at the end
    and its share of the baseline energy.
    """
    if simulate_func is None:
        from track_simulator.core.engine import run_simulation as simulate_func  # type: ignore

    base_full = merge_with_engine_defaults(cfg_overrides)
    base_value = float(get_by_path(base_full, param_path))

    values = [float(v) for v in values]
    rows: List[Dict[str, Any]] = []
    for v in values:
        cfg = set_by_path(base_full, param_path, v)
        df = simulate_func(cfg)

        thermal_final = float(df["E_thermal_J"].iloc[-1])
        baseline = df["E_baseline_J"].dropna()
        e_ref = float(baseline.iloc[-1]) if len(baseline) else float("nan")

        rows.append(
            {
                "param_path": param_path,
                "base_value": base_value,
                "param_value": v,
                "peak_speed": float(np.nanmax(np.abs(df["v"].to_numpy(dtype=float)))),
                "final_x": float(df["x"].iloc[-1]),
                "thermal_final_J": thermal_final,
                "thermal_fraction": thermal_final / e_ref if e_ref > 0.0 else float("nan"),
                "integrator_steps": int(df.attrs.get("integrator_steps", 0)),
            }
        )

        if out_dir and save_timeseries:
            out_dir.mkdir(parents=True, exist_ok=True)
            safe = _safe_filename(str(v))
            df.to_csv(out_dir / f"timeseries_{param_path.replace('.', '_')}_{safe}.csv", index=False)

    summary = pd.DataFrame(rows)

    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out_dir / "sensitivity_summary.csv", index=False)
        (out_dir / "config_overrides.yml").write_text(
            yaml.safe_dump(cfg_overrides, sort_keys=False), encoding="utf-8"
        )
        save_study_metadata(
            out_dir,
            metadata={
                "study_type": "sensitivity",
                "param_path": param_path,
                "values": values,
                "save_timeseries": bool(save_timeseries),
            },
        )

    return summary


def _safe_filename(s: str) -> str:
    return re.sub(r"[^0-9A-Za-z_.-]+", "_", s)
