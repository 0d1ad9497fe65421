from __future__ import annotations

from pathlib import Path
import sys

sys.path.insert(0, "src")

import numpy as np
import pandas as pd
import pytest
from typer.testing import CliRunner

from track_simulator.cli import _ascii_plot, app

runner = CliRunner()


def test_run_writes_results_and_log(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["run", "--duration", "0.5", "--friction", "0.3", "--output-dir", str(tmp_path), "--prefix", "case"],
    )
    assert result.exit_code == 0, result.output
    assert "Run summary" in result.output

    csv_path = tmp_path / "case_results.csv"
    log_path = tmp_path / "case_run.log"
    assert csv_path.exists()
    assert log_path.exists()

    df = pd.read_csv(csv_path)
    assert df["Time_s"].iloc[-1] > 0.0
    assert df["E_thermal_J"].iloc[-1] > 0.0
    assert "Run completed" in log_path.read_text(encoding="utf-8")


def test_run_with_config_and_ascii_plot(tmp_path: Path) -> None:
    cfg = tmp_path / "case.yml"
    cfg.write_text("physics:\n  gravity: 5.0\nrun:\n  duration_s: 0.2\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "-c", str(cfg), "-o", str(tmp_path), "--ascii-plot"])
    assert result.exit_code == 0, result.output
    assert "# energy [J]" in result.output
    assert (tmp_path / "results.csv").exists()


def test_run_rejects_invalid_config(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.yml"
    cfg.write_text("physics:\n  mass: -1.0\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "-c", str(cfg), "-o", str(tmp_path)])
    assert result.exit_code != 0


def test_run_rejects_negative_friction(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--friction", "-1", "-o", str(tmp_path)])
    assert result.exit_code != 0


def test_oscillation_command() -> None:
    result = runner.invoke(app, ["oscillation", "--duration", "7", "--frame-dt", "0.02"])
    assert result.exit_code == 0, result.output
    assert "Period" in result.output
    assert "right turn" in result.output


def test_convergence_command(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["convergence", "--frame-dts", "0.05,0.02", "--out", str(tmp_path)]
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "convergence_summary.csv").exists()


def test_ascii_plot_marks_each_series() -> None:
    t = np.linspace(0.0, 1.0, 20)
    plot = _ascii_plot(t, {"potential": 1.0 - t, "kinetic": t}, x_label="time [s]", width=30, height=8)
    lines = plot.splitlines()
    assert len(lines) == 10
    body = "\n".join(lines[1:-1])
    assert "p" in body and "k" in body


def test_ascii_plot_empty() -> None:
    assert _ascii_plot(np.array([]), {"potential": np.array([])}, x_label="t") == ""


def test_run_summary_names_integrator(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--duration", "0.1", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "semi-implicit Euler (order 1" in result.output


def test_study_float_lists() -> None:
    import typer

    from track_simulator.studies.cli import _parse_floats_csv

    assert _parse_floats_csv("0.1, 0.05 0.02") == [0.1, 0.05, 0.02]
    assert _parse_floats_csv("") == []
    with pytest.raises(typer.BadParameter):
        _parse_floats_csv("0.1,abc")
