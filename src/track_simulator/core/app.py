"""
Streamlit UI for the parabolic track simulator

This file provides the main application entry point and delegates widgets
and figures to the ui package. The controller lives in the session state;
every button maps to one controller command.
"""

from __future__ import annotations

import time

import pandas as pd
import streamlit as st

from track_simulator.ui import (
    build_parameter_ui,
    create_energy_bar_figure,
    create_history_figure,
    create_scene_figure,
    get_controller,
)

FRAME_DT = 1.0 / 30.0


def _record(ctrl) -> None:
    report = ctrl.get_energy_report()
    st.session_state["history"].append(
        {
            "Time_s": ctrl.sim_time,
            "x": ctrl.state.x,
            "E_pot_J": report.potential,
            "E_kin_J": report.kinetic,
            "E_thermal_J": report.thermal,
        }
    )


def _draw(ctrl, scene_slot, bars_slot, text_slot) -> None:
    snap = ctrl.get_mass_state()
    report = ctrl.get_energy_report()
    scene_slot.plotly_chart(create_scene_figure(ctrl), use_container_width=True)
    bars_slot.plotly_chart(create_energy_bar_figure(report), use_container_width=True)
    text_slot.markdown(
        f"**{snap.run_state.value}** · t = {snap.sim_time:.2f} s · "
        f"x = {snap.x:.1f} px · v = {snap.v:.1f} px/s"
    )


def main():
    """Main Streamlit application."""
    st.set_page_config(layout="wide", page_title="Parabolic Track - Energy", page_icon="🛹")

    ctrl = get_controller()
    build_parameter_ui()

    st.title("Energy on a parabolic track")
    st.markdown("Potential, kinetic and thermal energy of a mass sliding on **y = k x²**")

    col_ctrl, col_scene = st.columns([1, 2])

    with col_ctrl:
        c1, c2 = st.columns(2)
        label = "⏸ Pause" if ctrl.is_running else "▶️ Start"
        if c1.button(label, use_container_width=True):
            ctrl.toggle_run()
        if c2.button("↺ Reset", use_container_width=True):
            ctrl.reset()
            st.session_state["history"] = []

        play_s = st.number_input("Play for (s)", min_value=0.5, max_value=30.0, value=5.0, step=0.5)

        st.markdown("---")
        st.subheader("Move the mass")
        half = ctrl.viewport.width / 2.0
        target = st.slider("Position x (px)", min_value=-half, max_value=half, value=float(ctrl.state.x), step=1.0)
        if st.button("Place mass", use_container_width=True):
            # Same gesture sequence as a pointer drag: grab at the mass, move, release
            ctrl.place(target)
            ctrl.advance_frame(0.0)
            _record(ctrl)

    with col_scene:
        scene_slot = st.empty()
        text_slot = st.empty()
        bars_slot = st.empty()

    if ctrl.is_running:
        n_frames = int(play_s / FRAME_DT)
        t_prev = time.perf_counter()
        for _ in range(n_frames):
            time.sleep(FRAME_DT)
            now = time.perf_counter()
            ctrl.advance_frame(now - t_prev)
            t_prev = now
            _record(ctrl)
            _draw(ctrl, scene_slot, bars_slot, text_slot)
            if not ctrl.is_running:
                break
    else:
        ctrl.advance_frame(0.0)
        _draw(ctrl, scene_slot, bars_slot, text_slot)

    history = st.session_state.get("history", [])
    if history:
        st.subheader("History")
        st.plotly_chart(create_history_figure(pd.DataFrame(history)), use_container_width=True)


if __name__ == "__main__":
    main()
