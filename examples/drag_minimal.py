from pathlib import Path
import matplotlib.pyplot as plt

from track_simulator.config import load_simulation_config
from track_simulator.core.engine import run_simulation


def main():
    project_root = Path(__file__).resolve().parents[1]
    cfg_path = project_root / "configs" / "drag.yml"

    params = load_simulation_config(cfg_path)
    df = run_simulation(params)

    plt.figure()
    plt.plot(df["Time_s"], df["E_pot_J"], label="potential")
    plt.plot(df["Time_s"], df["E_kin_J"], label="kinetic")
    plt.plot(df["Time_s"], df["E_thermal_J"], label="thermal")
    plt.xlabel("t [s]")
    plt.ylabel("E [J]")
    plt.legend()
    plt.grid(True)
    plt.tight_layout()
    plt.show()

    E0 = float(df["E_total_J"].iloc[0])
    gap = abs(df["W_drag_J"].iloc[-1] - df["E_thermal_J"].iloc[-1]) / (E0 + 1e-16)
    print(f"Drag work vs thermal residual: {gap:.3e} of E0")


if __name__ == "__main__":
    main()
