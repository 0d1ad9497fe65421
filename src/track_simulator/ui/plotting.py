"""
Plotting utilities for the parabolic track simulator UI.

All figures are built from read-only controller snapshots or from the
per-frame history DataFrame produced by the app.
"""

from typing import Sequence

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from track_simulator.core.energy import EnergyReport
from track_simulator.core.engine import SimulationConstants, SimulationController

ENERGY_COLORS = {
    "potential": "#3b82f6",
    "kinetic": "#22c55e",
    "thermal": "#ef4444",
    "total": "#e2e8f0",
}


def create_scene_figure(ctrl: SimulationController) -> go.Figure:
    """
    Draw the visible part of the track and the mass in screen coordinates.

    The y axis is reversed so the figure matches the screen mapping used for
    hit testing (screen y grows downwards).
    """
    vp = ctrl.viewport
    sx, sy = vp.track_polyline(ctrl.track)
    snap = ctrl.get_mass_state()
    bx, by = vp.world_to_screen(snap.x, snap.y)

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=sx,
            y=sy,
            mode="lines",
            line=dict(width=4, color="rgba(148, 163, 184, 0.6)"),
            hoverinfo="skip",
            showlegend=False,
        )
    )
    fig.add_trace(
        go.Scatter(
            x=[bx],
            y=[by],
            mode="markers",
            marker=dict(size=30, color="#f1f5f9", line=dict(width=2, color="#94a3b8")),
            hovertemplate="x=%{customdata[0]:.1f}<br>v=%{customdata[1]:.1f}<extra></extra>",
            customdata=[[snap.x, snap.v]],
            showlegend=False,
        )
    )
    fig.update_xaxes(range=[0, vp.width], visible=False)
    fig.update_yaxes(range=[vp.height, 0], visible=False, scaleanchor="x", scaleratio=1)
    fig.update_layout(
        height=420,
        margin=dict(l=10, r=10, t=10, b=10),
        plot_bgcolor="#0f172a",
        paper_bgcolor="#0f172a",
    )
    return fig


def create_energy_bar_figure(report: EnergyReport) -> go.Figure:
    """Horizontal energy bars normalised to max(total, 10 J)."""
    fractions = report.bar_fractions(SimulationConstants.MIN_ENERGY_DENOMINATOR)
    values = report.as_dict()
    names = ["total", "potential", "kinetic", "thermal"]

    fig = go.Figure(
        go.Bar(
            x=[100.0 * fractions[n] for n in names],
            y=names,
            orientation="h",
            marker_color=[ENERGY_COLORS[n] for n in names],
            text=[f"{round(values[n])} J" for n in names],
            textposition="auto",
            hoverinfo="skip",
        )
    )
    fig.update_xaxes(range=[0, 100], title_text="% of total")
    fig.update_yaxes(autorange="reversed")
    fig.update_layout(height=260, margin=dict(l=10, r=10, t=10, b=10), showlegend=False)
    return fig


def create_history_figure(df: pd.DataFrame, columns: Sequence[str] = ("E_pot_J", "E_kin_J", "E_thermal_J")) -> go.Figure:
    """
    Position and stacked energy partition over simulated time.

    Args:
        df: DataFrame with Time_s, x and the energy columns of
            `track_simulator.core.engine.run_simulation`.
    """
    fig = make_subplots(
        rows=2,
        cols=1,
        shared_xaxes=True,
        subplot_titles=("Position", "Energy"),
        vertical_spacing=0.08,
    )
    fig.add_trace(
        go.Scatter(x=df["Time_s"], y=df["x"], line=dict(width=2, color="#1f77b4"), showlegend=False),
        row=1,
        col=1,
    )
    fig.update_yaxes(title_text="x (px)", row=1, col=1)

    labels = {"E_pot_J": "potential", "E_kin_J": "kinetic", "E_thermal_J": "thermal"}
    for col in columns:
        name = labels.get(col, col)
        fig.add_trace(
            go.Scatter(
                x=df["Time_s"],
                y=df[col],
                name=name,
                stackgroup="energy",
                line=dict(width=1, color=ENERGY_COLORS.get(name)),
            ),
            row=2,
            col=1,
        )
    fig.update_yaxes(title_text="Energy (J)", row=2, col=1)
    fig.update_xaxes(title_text="Time (s)", row=2, col=1)
    fig.update_layout(height=520, margin=dict(l=10, r=10, t=40, b=10))
    return fig
