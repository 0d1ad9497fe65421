# src/track_simulator/cli.py

from __future__ import annotations

import logging
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import typer

from .config import ConfigError, load_simulation_config
from .core.engine import SimulationConstants, get_default_simulation_params, run_simulation

app = typer.Typer(
    add_completion=False,
    help=(
        "Parabolic track simulator CLI\n\n"
        "A mass slides on the track y = k x² under gravity with optional linear\n"
        "drag; potential, kinetic and thermal energy are tracked every frame.\n"
        "Use 'run' for a headless time history, 'live' for the terminal view\n"
        "and 'ui' for the Streamlit app."
    ),
)

# Studies commands (convergence / sensitivity / oscillation)
from .studies.cli import register_study_commands
register_study_commands(app)


@app.command()
def ui(
    host: str = typer.Option("127.0.0.1", help="Server address (use 0.0.0.0 to expose)."),
    port: int = typer.Option(8501, help="Server port."),
    headless: bool = typer.Option(False, help="Run Streamlit in headless mode."),
) -> None:
    """Launch the Streamlit UI (requires the optional 'ui' dependencies)."""
    app_py = Path(__file__).resolve().parent / "core" / "app.py"

    try:
        import streamlit  # noqa: F401
    except ImportError:
        raise typer.BadParameter(
            "Streamlit is not installed. Install UI extras with:\n\n"
            "  pip install 'parabolic-track-simulator[ui]'\n"
        )

    cmd = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(app_py),
        "--server.address",
        host,
        "--server.port",
        str(port),
    ]
    if headless:
        cmd += ["--server.headless", "true"]

    raise typer.Exit(subprocess.call(cmd))

# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _load_params(config: Optional[Path]) -> Dict[str, Any]:
    """Load a config file into the flat engine dict (defaults when None)."""
    if config is None:
        return get_default_simulation_params()
    try:
        return load_simulation_config(config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _apply_overrides(
    params: Dict[str, Any],
    *,
    duration: Optional[float],
    frame_dt: Optional[float],
    friction: Optional[float],
    gravity: Optional[float],
    start_x: Optional[float],
) -> Dict[str, Any]:
    out = dict(params)
    if duration is not None:
        if duration < 0.0:
            raise typer.BadParameter("--duration must be >= 0.")
        out["duration_s"] = duration
    if frame_dt is not None:
        if frame_dt <= 0.0:
            raise typer.BadParameter("--frame-dt must be > 0.")
        out["frame_dt_s"] = frame_dt
    if friction is not None:
        if friction < 0.0:
            raise typer.BadParameter("--friction must be >= 0.")
        out["friction_enabled"] = friction > 0.0
        out["friction_coefficient"] = friction
    if gravity is not None:
        out["gravity"] = gravity
    if start_x is not None:
        out["start_x"] = start_x
    return out


def _ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _setup_logger(output_dir: Path, log_stem: str) -> logging.Logger:
    """
    Set up a per-run logger writing to <output_dir>/<log_stem>.log.
    """
    _ensure_output_dir(output_dir)
    logger = logging.getLogger(f"track_simulator.cli.{log_stem}")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    log_file = output_dir / f"{log_stem}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Engine warnings (clamped frames, ignored keys) go to the same file
    engine_logger = logging.getLogger("track_simulator.core")
    engine_logger.setLevel(logging.INFO)
    for old in list(engine_logger.handlers):
        if isinstance(old, logging.FileHandler):
            engine_logger.removeHandler(old)
            old.close()
    engine_logger.addHandler(handler)

    return logger


def _print_and_log(logger: logging.Logger, msg: str) -> None:
    typer.echo(msg)
    logger.info(msg)


def _ascii_plot(
    x: np.ndarray,
    series: Dict[str, np.ndarray],
    x_label: str,
    width: int = 70,
    height: int = 20,
) -> str:
    """
    Very simple ASCII plot of several non-negative series sharing one axis.

    Each series is drawn with the first letter of its name.
    """
    x = np.asarray(x, dtype=float)
    if len(x) == 0 or not series:
        return ""

    x_min = float(np.min(x))
    x_max = float(np.max(x))
    if x_max <= x_min:
        x_min, x_max = 0.0, 1.0

    y_max = max(float(np.max(np.asarray(y, dtype=float))) for y in series.values())
    if y_max <= 0.0:
        y_max = 1.0

    grid = [[" " for _ in range(width)] for _ in range(height)]
    for name, y in series.items():
        mark = name[0]
        for xi, yi in zip(x, np.asarray(y, dtype=float)):
            if yi < 0.0:
                continue
            col = int((xi - x_min) / (x_max - x_min + 1e-12) * (width - 1))
            row = height - 1 - int(yi / (y_max + 1e-12) * (height - 1))
            if 0 <= row < height and 0 <= col < width:
                grid[row][col] = mark

    legend = ", ".join(f"{name[0]}={name}" for name in series)
    lines = [f"# energy [J] (max {y_max:.3g})  {legend}"]
    for r in grid:
        lines.append("".join(r).rstrip())
    lines.append(f"# {x_label} ({x_min:.2f} – {x_max:.2f})")
    return "\n".join(lines)


def _show_ascii_plot(results_df: pd.DataFrame, logger: logging.Logger) -> None:
    plot = _ascii_plot(
        results_df["Time_s"].to_numpy(),
        {
            "potential": results_df["E_pot_J"].to_numpy(),
            "kinetic": results_df["E_kin_J"].to_numpy(),
            "thermal": results_df["E_thermal_J"].to_numpy(),
        },
        x_label="time [s]",
    )
    typer.echo("")
    typer.echo(plot)
    logger.info("ASCII energy plot printed to console.")


def _show_matplotlib_plot(results_df: pd.DataFrame) -> None:
    """Blocking matplotlib window: position and energy partition over time."""
    import matplotlib.pyplot as plt

    t = results_df["Time_s"].to_numpy()
    fig, (ax_x, ax_e) = plt.subplots(2, 1, sharex=True, figsize=(9, 6))
    ax_x.plot(t, results_df["x"].to_numpy(), color="#1f77b4")
    ax_x.set_ylabel("x [px]")
    ax_x.grid(True, alpha=0.3)

    ax_e.stackplot(
        t,
        results_df["E_pot_J"].to_numpy(),
        results_df["E_kin_J"].to_numpy(),
        results_df["E_thermal_J"].to_numpy(),
        labels=["potential", "kinetic", "thermal"],
        colors=["#3b82f6", "#22c55e", "#ef4444"],
    )
    ax_e.set_xlabel("time [s]")
    ax_e.set_ylabel("energy [J]")
    ax_e.legend(loc="upper right")
    ax_e.grid(True, alpha=0.3)

    fig.tight_layout()
    plt.show()


def _print_run_summary(results_df: pd.DataFrame, wall_time: float, logger: logging.Logger) -> None:
    last = results_df.iloc[-1]
    sim_time = float(last["Time_s"])
    steps = int(results_df.attrs.get("integrator_steps", 0))
    scheme = results_df.attrs.get("stability", {})
    lines = [
        "",
        "Run summary:",
        f"  Wall-clock time       : {wall_time:.3f} s",
        f"  Simulated time        : {sim_time:.3f} s",
        f"  Frames                : {int(results_df.attrs.get('frames', len(results_df) - 1))}",
        f"  Integrator sub-steps  : {steps}",
        f"  Integrator            : {scheme.get('method', 'n/a')} (order {scheme.get('order', '?')}, "
        f"max sub-step {scheme.get('max_sub_step', float('nan')):.3g} s)",
        f"  Real-time factor      : {sim_time / wall_time if wall_time > 0 else float('inf'):.1f}x",
        f"  Final x / v           : {float(last['x']):.3f} px / {float(last['v']):.3f} px/s",
        f"  Final energies [J]    : pot {float(last['E_pot_J']):.3f}, kin {float(last['E_kin_J']):.3f}, "
        f"thermal {float(last['E_thermal_J']):.3f}, total {float(last['E_total_J']):.3f}",
        f"  Drag work (diagnostic): {float(last['W_drag_J']):.3f} J",
    ]
    for line in lines:
        _print_and_log(logger, line)


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        readable=True,
        help="YAML/JSON configuration file (physics, friction, run, viewport).",
    ),
    output_dir: Path = typer.Option(
        Path("results"),
        "--output-dir",
        "-o",
        help="Directory for result files.",
    ),
    prefix: str = typer.Option(
        "",
        "--prefix",
        "-p",
        help="Optional filename prefix for output files.",
    ),
    duration: Optional[float] = typer.Option(None, "--duration", "-t", help="Simulated time [s]."),
    frame_dt: Optional[float] = typer.Option(
        None,
        "--frame-dt",
        help=f"Frame interval [s]; clamped to {SimulationConstants.MAX_FRAME_DT} s per frame.",
    ),
    friction: Optional[float] = typer.Option(
        None,
        "--friction",
        "-f",
        help="Linear drag coefficient [1/s]. A positive value enables friction, 0 disables it.",
    ),
    gravity: Optional[float] = typer.Option(None, "--gravity", "-g", help="Gravity [m/s²] (user-facing value)."),
    start_x: Optional[float] = typer.Option(None, "--start-x", help="Start position [px], 0 is the bottom."),
    ascii_plot: bool = typer.Option(
        False,
        "--ascii-plot",
        help="Print an ASCII plot of the energy partition to the console.",
    ),
    plot: bool = typer.Option(
        False,
        "--plot",
        help="Show a matplotlib window with position and energies vs time.",
    ),
) -> None:
    """
    Run a headless simulation and write the per-frame time history.

    Examples
    --------
        track-sim run --duration 8 --friction 0.3 --output-dir results/drag

        track-sim run --config configs/default.yml --ascii-plot
    """
    _ensure_output_dir(output_dir)

    filename_prefix = f"{prefix}_" if prefix else ""
    log_stem = f"{filename_prefix}run"
    logger = _setup_logger(output_dir, log_stem)

    if config is not None:
        _print_and_log(logger, f"Loading config: {config}")
    params = _apply_overrides(
        _load_params(config),
        duration=duration,
        frame_dt=frame_dt,
        friction=friction,
        gravity=gravity,
        start_x=start_x,
    )

    _print_and_log(logger, "Running simulation ...")
    t0 = time.perf_counter()
    results_df = run_simulation(params)
    wall_time = time.perf_counter() - t0

    csv_path = output_dir / f"{filename_prefix}results.csv"
    _print_and_log(logger, f"Writing time history to {csv_path}")
    results_df.to_csv(csv_path, index=False)

    _print_run_summary(results_df, wall_time, logger)

    if ascii_plot:
        _show_ascii_plot(results_df, logger)

    if plot:
        _show_matplotlib_plot(results_df)

    log_file = output_dir / f"{log_stem}.log"
    typer.echo(f"\nDetailed log written to {log_file}")
    logger.info("Run completed.")


@app.command()
def live(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        readable=True,
        help="YAML/JSON configuration file.",
    ),
    fps: float = typer.Option(30.0, "--fps", help="Target frame rate of the terminal view."),
    ascii_only: bool = typer.Option(False, "--ascii", help="Use ASCII characters only."),
) -> None:
    """
    Interactive full screen terminal view.

    Keys: space start/pause, r reset, g grab/release, ←/→ drag,
    f friction on/off, +/- gravity, q quit.
    """
    from .core.engine import build_controller
    from .terminal_monitor import MonitorConfig, run_live_monitor

    if fps <= 0.0:
        raise typer.BadParameter("--fps must be > 0.")
    params = _load_params(config)
    ctrl = build_controller(params)
    try:
        run_live_monitor(ctrl, MonitorConfig(refresh_s=1.0 / fps, ascii_only=ascii_only))
    except RuntimeError as exc:
        raise typer.BadParameter(str(exc)) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
