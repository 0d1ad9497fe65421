"""
Parameter input UI components for the parabolic track simulator.

Provides the sidebar (gravity, friction) and keeps one controller per
browser session in ``st.session_state``.
"""

from __future__ import annotations

from typing import Any, Dict

import streamlit as st

from track_simulator.core.engine import SimulationController, build_controller, get_default_simulation_params


def get_controller() -> SimulationController:
    """Return the session's controller, creating it on first use."""
    ctrl = st.session_state.get("controller")
    if ctrl is None:
        ctrl = build_controller(get_default_simulation_params())
        st.session_state["controller"] = ctrl
        st.session_state["history"] = []
    return ctrl


def build_parameter_ui() -> Dict[str, Any]:
    """Sidebar widgets; changes are pushed to the controller immediately."""
    ctrl = get_controller()
    p = ctrl.params

    st.sidebar.header("Physics")
    gravity = st.sidebar.slider("Gravity (m/s²)", min_value=1.0, max_value=20.0, value=float(p.gravity), step=0.1)
    if gravity != p.gravity:
        ctrl.set_gravity(gravity)

    st.sidebar.header("Friction")
    enabled = st.sidebar.checkbox("Enable friction", value=p.friction_enabled)
    coefficient = p.friction_setting
    if enabled:
        coefficient = st.sidebar.slider(
            "Drag coefficient (1/s)",
            min_value=0.0,
            max_value=1.0,
            value=float(p.friction_setting),
            step=0.005,
            format="%.3f",
        )
    if enabled != p.friction_enabled or coefficient != p.friction_setting:
        ctrl.set_friction(enabled, coefficient)

    return {
        "gravity": ctrl.params.gravity,
        "friction_enabled": ctrl.params.friction_enabled,
        "friction_coefficient": ctrl.params.friction_setting,
    }
