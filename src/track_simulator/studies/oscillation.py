"""
Oscillation analysis of a frictionless run.

Turning points are the extrema of x(t). On a symmetric track the motion
must be mirror-symmetric in time about each turning point, and the left
and right amplitudes must match; both are checks of the gravity
projection along the parabola.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from scipy.signal import find_peaks


def find_turning_points(df: pd.DataFrame) -> Dict[str, np.ndarray]:
    """Indices of right (max x) and left (min x) turning points."""
    x = df["x"].to_numpy(dtype=float)
    right, _ = find_peaks(x)
    left, _ = find_peaks(-x)
    return {"right": right, "left": left}


def mirror_residual(df: pd.DataFrame, index: int, window_s: float) -> float:
    """Max |x(t* + s) - x(t* - s)| for s up to ``window_s`` around sample ``index``.

    Assumes a uniform sample spacing (one row per frame).
    """
    t = df["Time_s"].to_numpy(dtype=float)
    x = df["x"].to_numpy(dtype=float)
    if len(t) < 3:
        return float("nan")
    dt = float(np.median(np.diff(t)))
    if dt <= 0.0:
        return float("nan")
    n = int(round(window_s / dt))
    n = min(n, index, len(x) - 1 - index)
    if n <= 0:
        return float("nan")
    after = x[index + 1 : index + n + 1]
    before = x[index - n : index][::-1]
    return float(np.max(np.abs(after - before)))


def analyse_oscillation(df: pd.DataFrame, window_s: Optional[float] = None) -> Dict[str, Any]:
    """
    Summarize turning points, period and symmetry of a run.

    Parameters
    ----------
    df:
        Output of `run_simulation` (needs Time_s and x).
    window_s:
        Half-width of the mirror-symmetry check. Defaults to a quarter of
        the estimated period.

    Returns
    -------
    dict with turning-point times and positions, ``period_s`` (mean spacing
    of successive right turning points, NaN if fewer than two),
    ``amplitude_asymmetry`` (|x_right| - |x_left| of the first pair) and
    ``mirror_residual`` about the first right turning point.
    """
    t = df["Time_s"].to_numpy(dtype=float)
    x = df["x"].to_numpy(dtype=float)
    tp = find_turning_points(df)
    right, left = tp["right"], tp["left"]

    if len(right) >= 2:
        period = float(np.mean(np.diff(t[right])))
    elif len(left) >= 2:
        period = float(np.mean(np.diff(t[left])))
    else:
        period = float("nan")

    if len(right) and len(left):
        asym = float(abs(x[right[0]]) - abs(x[left[0]]))
    elif len(right):
        asym = float(abs(x[right[0]]) - abs(x[0]))
    else:
        asym = float("nan")

    if window_s is None:
        window_s = period / 4.0 if np.isfinite(period) else 0.5
    residual = mirror_residual(df, int(right[0]), window_s) if len(right) else float("nan")

    return {
        "right_times_s": t[right].tolist(),
        "right_x": x[right].tolist(),
        "left_times_s": t[left].tolist(),
        "left_x": x[left].tolist(),
        "period_s": period,
        "amplitude_asymmetry": asym,
        "mirror_residual": residual,
        "mirror_window_s": float(window_s),
    }
