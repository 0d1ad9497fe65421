"""
UI package for the parabolic track simulator Streamlit application.

The UI only issues controller commands and draws read-only snapshots.
"""

from .parameters import build_parameter_ui, get_controller
from .plotting import create_energy_bar_figure, create_history_figure, create_scene_figure

__all__ = [
    # Parameters / session
    "build_parameter_ui",
    "get_controller",
    # Plotting
    "create_energy_bar_figure",
    "create_history_figure",
    "create_scene_figure",
]
