import json
import tempfile
import unittest
from pathlib import Path

import numpy as np
import pandas as pd

from track_simulator.studies.convergence import energy_drift_metrics, run_frame_dt_study


def fake_simulation(cfg):
    dt = float(cfg["frame_dt_s"])
    t = np.linspace(0.0, 1.0, 5)
    # drift proportional to the frame interval
    mech = 4.9 * (1.0 + dt * np.array([0.0, 1.0, -1.0, 0.5, 0.2]))
    df = pd.DataFrame(
        {
            "Time_s": t,
            "x": np.linspace(-100.0, 0.0, 5),
            "E_pot_J": mech,
            "E_kin_J": np.zeros(5),
        }
    )
    df.attrs["frames"] = 4
    df.attrs["sub_steps"] = 10
    return df


class TestConvergenceStudy(unittest.TestCase):
    def test_convergence_summary(self):
        cfg = {"duration_s": 1.0, "friction_enabled": True}
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp)
            summary = run_frame_dt_study(
                cfg,
                [0.01, 0.05, 0.02],
                out_dir=out,
                simulate_func=fake_simulation,
            )
            self.assertTrue((out / "convergence_summary.csv").exists())
            self.assertTrue((out / "config_overrides.yml").exists())
            meta = json.loads((out / "run_metadata.json").read_text(encoding="utf-8"))
            self.assertEqual(meta["study_type"], "frame_dt_convergence")

        self.assertEqual(list(summary["frame_dt_s"]), [0.05, 0.02, 0.01])
        self.assertAlmostEqual(summary["sub_step_s"].iloc[0], 0.005)
        self.assertAlmostEqual(summary["max_rel_drift"].iloc[0], 0.05)
        self.assertTrue(summary["max_rel_drift"].is_monotonic_decreasing)

    def test_friction_is_forced_off(self):
        seen = []

        def record(cfg):
            seen.append(cfg["friction_enabled"])
            return fake_simulation(cfg)

        run_frame_dt_study({"friction_enabled": True}, [0.02], simulate_func=record)
        self.assertEqual(seen, [False])

    def test_drift_metrics_without_energy(self):
        df = pd.DataFrame({"E_pot_J": [0.0, 0.0], "E_kin_J": [0.0, 0.0]})
        metrics = energy_drift_metrics(df)
        self.assertTrue(np.isnan(metrics["max_rel_drift"]))

    def test_real_engine_drift_shrinks_with_frame_interval(self):
        summary = run_frame_dt_study({"duration_s": 3.0}, [0.05, 0.01])
        coarse, fine = summary["max_rel_drift"].tolist()
        self.assertLess(fine, coarse)
        self.assertLess(coarse, 0.05)


if __name__ == "__main__":
    unittest.main()
