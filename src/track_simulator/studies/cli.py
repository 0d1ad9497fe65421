"""
Typer CLI commands for studies.

Imported and registered from `track_simulator.cli`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from . import parse_floats_csv


def _parse_floats_csv(s: str) -> List[float]:
    """Parse comma/space-separated floats, e.g. "0.1,0.05"."""
    try:
        return parse_floats_csv(s or "")
    except ValueError as e:
        raise typer.BadParameter(f'Could not parse floats from: {s!r}') from e


def _load_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    from track_simulator.config import ConfigError, load_simulation_config

    try:
        return load_simulation_config(path)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def register_study_commands(app: typer.Typer) -> None:
    @app.command("convergence")
    def convergence_cmd(
        config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Base config YAML"),
        frame_dts: str = typer.Option("0.1,0.05,0.02,0.01", "--frame-dts", help="Comma/space-separated frame intervals [s]"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Save timeseries CSVs for each run"),
    ) -> None:
        """Run frame-interval convergence (energy drift) study."""
        from .convergence import run_frame_dt_study

        cfg = _load_config(config)
        summary = run_frame_dt_study(
            cfg, _parse_floats_csv(frame_dts), out_dir=out, save_timeseries=save_timeseries
        )
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")

    @app.command("sensitivity")
    def sensitivity_cmd(
        param_path: str = typer.Argument(..., help="Parameter name, e.g. gravity or friction_coefficient"),
        values: str = typer.Option(..., "--values", help="Comma/space-separated values"),
        config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Base config YAML"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Save timeseries CSVs for each run"),
    ) -> None:
        """Run single-parameter sensitivity study."""
        from .sensitivity import run_sensitivity_study

        cfg = _load_config(config)
        summary = run_sensitivity_study(
            cfg,
            param_path=param_path,
            values=_parse_floats_csv(values),
            out_dir=out,
            save_timeseries=save_timeseries,
        )
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")

    @app.command("oscillation")
    def oscillation_cmd(
        config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Base config YAML"),
        duration: float = typer.Option(12.0, "--duration", help="Simulated time [s]"),
        frame_dt: float = typer.Option(0.01, "--frame-dt", help="Frame interval [s]"),
    ) -> None:
        """Frictionless run: turning points, period and mirror symmetry."""
        from track_simulator.core.engine import run_simulation

        from .oscillation import analyse_oscillation

        cfg = _load_config(config)
        cfg.update({"friction_enabled": False, "duration_s": duration, "frame_dt_s": frame_dt})
        result = analyse_oscillation(run_simulation(cfg))

        typer.echo(f"Period               : {result['period_s']:.4f} s")
        typer.echo(f"Amplitude asymmetry  : {result['amplitude_asymmetry']:.4f} px")
        typer.echo(
            f"Mirror residual      : {result['mirror_residual']:.4f} px "
            f"(±{result['mirror_window_s']:.3f} s around first right turning point)"
        )
        for t_s, x in zip(result["right_times_s"], result["right_x"]):
            typer.echo(f"  right turn  t={t_s:8.3f} s  x={x:9.3f}")
        for t_s, x in zip(result["left_times_s"], result["left_x"]):
            typer.echo(f"  left turn   t={t_s:8.3f} s  x={x:9.3f}")
