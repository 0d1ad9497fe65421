"""Engine for the parabolic track simulator.

This module is UI-agnostic: it owns the simulation context (mass state,
physics parameters, energy baseline), drives the sub-stepped integration
per frame and implements the run / pause / drag / reset state machine.

Use from CLI, Streamlit app or tests as:

    from track_simulator.core.engine import SimulationController

    ctrl = SimulationController()
    ctrl.toggle_run()
    ctrl.advance_frame(1.0 / 60.0)
    report = ctrl.get_energy_report()

or, for a complete headless time history:

    from track_simulator.core.engine import run_simulation

    df = run_simulation({"friction_enabled": True, "duration_s": 5.0})
"""


from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .energy import EnergyLedger, EnergyReference, EnergyReport
from .integrator import SemiImplicitEulerIntegrator
from .state import GRAVITY_SCALE, MassSnapshot, MassState, PhysicsParameters, RunState
from .track import ParabolicTrack

logger = logging.getLogger(__name__)


# ====================================================================
# SIMULATION CONSTANTS
# ====================================================================

class SimulationConstants:
    """Physical, numerical and interaction constants.

    Centralizes magic numbers shared by the controller, the headless
    runner and the presentation layers.
    """

    # Frame driver
    MAX_FRAME_DT = 0.1  # s - elapsed wall time is clamped before sub-stepping
    SUB_STEPS = 10      # fixed integrator calls per frame

    # Scaling between user-facing and display units
    GRAVITY_SCALE = GRAVITY_SCALE
    DISPLAY_SCALE = EnergyLedger.DISPLAY_SCALE

    # Interaction
    GRAB_RADIUS_PX = 40.0
    START_X = -100.0    # px - reset position, left of the bottom

    # Energy bars
    MIN_ENERGY_DENOMINATOR = 10.0


# ====================================================================
# SCREEN MAPPING
# ====================================================================

@dataclass(frozen=True)
class ScreenTransform:
    """World <-> screen mapping used for drawing and hit testing.

    The bottom of the track sits horizontally centred, ``bottom_margin``
    pixels above the lower edge. Screen ``y`` grows downwards.
    """

    width: float = 800.0
    height: float = 500.0
    bottom_margin: float = 50.0

    @property
    def center_x(self) -> float:
        return self.width / 2.0

    @property
    def bottom_y(self) -> float:
        return self.height - self.bottom_margin

    def world_to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return self.center_x + x, self.bottom_y - y

    def screen_to_world_x(self, pointer_x: float) -> float:
        return float(pointer_x) - self.center_x

    def track_polyline(self, track: ParabolicTrack, step: float = 5.0) -> Tuple[np.ndarray, np.ndarray]:
        """Screen coordinates of the visible part of the track."""
        xs = np.arange(-self.width / 2.0, self.width / 2.0, float(step))
        sx = self.center_x + xs
        sy = self.bottom_y - track.height(xs)
        visible = sy >= 0.0
        return sx[visible], sy[visible]


# ====================================================================
# CONTROLLER
# ====================================================================

FrameListener = Callable[[MassSnapshot, EnergyReport], None]


class SimulationController:
    """Owns the simulation context and serialises every mutation.

    States
    ------
    - ``IDLE``: initial and paused state, nothing is integrated.
    - ``RUNNING``: :meth:`advance_frame` integrates ``SUB_STEPS`` sub-steps.
    - ``DRAGGING``: the user holds the mass; integration is suspended and
      the energy baseline follows the hand-placed mass.

    The controller is single-threaded by design of the frame loop: the frame
    driver and the input handlers must run on the same thread.
    """

    def __init__(
        self,
        params: Optional[PhysicsParameters] = None,
        *,
        mass: float = 1.0,
        start_x: float = SimulationConstants.START_X,
        viewport: Optional[ScreenTransform] = None,
        integrator: Optional[SemiImplicitEulerIntegrator] = None,
        ledger: Optional[EnergyLedger] = None,
    ):
        if mass <= 0.0:
            raise ValueError(f"mass must be > 0, got {mass!r}")

        self.params = params if params is not None else PhysicsParameters()
        self.track = ParabolicTrack(curvature=self.params.track_curvature)
        self.mass = float(mass)
        self.start_x = float(start_x)
        self.viewport = viewport if viewport is not None else ScreenTransform()
        self.integrator = integrator if integrator is not None else SemiImplicitEulerIntegrator(
            max_sub_step=SimulationConstants.MAX_FRAME_DT / SimulationConstants.SUB_STEPS
        )
        self.ledger = ledger if ledger is not None else EnergyLedger()
        self.reference = EnergyReference()
        self.frame_listeners: List[FrameListener] = []

        self.state = MassState.on_track(self.track, self.start_x, 0.0, self.mass)
        self.run_state = RunState.IDLE
        self.sim_time = 0.0
        self._report = EnergyReport(0.0, 0.0, 0.0, 0.0)

        self.reset()

    # ----------------------------------------------------------------
    # SNAPSHOTS
    # ----------------------------------------------------------------
    @property
    def is_dragging(self) -> bool:
        return self.run_state is RunState.DRAGGING

    @property
    def is_running(self) -> bool:
        return self.run_state is RunState.RUNNING

    def get_mass_state(self) -> MassSnapshot:
        return MassSnapshot(
            x=self.state.x,
            y=self.state.y,
            v=self.state.v,
            run_state=self.run_state,
            sim_time=self.sim_time,
        )

    def get_energy_report(self) -> EnergyReport:
        return self._report

    def _refresh_report(self) -> EnergyReport:
        self._report = self.ledger.compute(
            self.state, self.params, self.reference, self.is_dragging
        )
        return self._report

    # ----------------------------------------------------------------
    # FRAME DRIVER
    # ----------------------------------------------------------------
    def advance_frame(self, elapsed_seconds: float) -> MassSnapshot:
        """Advance by one display frame.

        ``elapsed_seconds`` is clamped to ``[0, MAX_FRAME_DT]`` and split
        into ``SUB_STEPS`` equal sub-steps, integrated only while running.
        The energy report is refreshed and listeners are notified in every
        state, so a paused or dragged scene still shows correct values.
        """
        dt = float(elapsed_seconds)
        if math.isnan(dt) or dt < 0.0:
            dt = 0.0
        dt = min(dt, SimulationConstants.MAX_FRAME_DT)

        if self.is_running and dt > 0.0:
            h = dt / SimulationConstants.SUB_STEPS
            state = self.state
            for _ in range(SimulationConstants.SUB_STEPS):
                state = self.integrator.advance(state, self.params, self.track, h)
            self.state = state
            self.sim_time += dt

        report = self._refresh_report()
        snapshot = self.get_mass_state()
        for listener in self.frame_listeners:
            listener(snapshot, report)
        return snapshot

    # ----------------------------------------------------------------
    # COMMANDS
    # ----------------------------------------------------------------
    def toggle_run(self) -> MassSnapshot:
        """Start or pause free motion. Ignored while the mass is held."""
        if self.is_dragging:
            logger.debug("toggle_run ignored while dragging")
        elif self.is_running:
            self.run_state = RunState.IDLE
        else:
            self.run_state = RunState.RUNNING
        return self.get_mass_state()

    def reset(self) -> MassSnapshot:
        """Put the mass back at the start position, at rest, and pause."""
        self.params.apply_friction(self.params.friction_enabled, self.params.friction_setting)
        self.state = MassState.on_track(self.track, self.start_x, 0.0, self.mass)
        self.reference.invalidate()
        self.run_state = RunState.IDLE
        self.sim_time = 0.0
        self.integrator.reset_counters()
        self._refresh_report()
        return self.get_mass_state()

    def grab(self, pointer_x: float, pointer_y: float) -> bool:
        """Try to pick up the mass at a screen position.

        Returns ``True`` when the pointer lies within ``GRAB_RADIUS_PX`` of
        the rendered mass centre; the mass is then held at rest.
        """
        ball_x, ball_y = self.viewport.world_to_screen(self.state.x, self.state.y)
        dist = math.hypot(float(pointer_x) - ball_x, float(pointer_y) - ball_y)
        if dist >= SimulationConstants.GRAB_RADIUS_PX:
            return False

        self.run_state = RunState.DRAGGING
        self.state = MassState.on_track(self.track, self.state.x, 0.0, self.mass)
        self.reference.invalidate()
        self._refresh_report()
        return True

    def drag_to(self, pointer_x: float) -> MassSnapshot:
        """Move the held mass to the track point under ``pointer_x``."""
        if not self.is_dragging:
            return self.get_mass_state()

        x = self.viewport.screen_to_world_x(pointer_x)
        self.state = MassState.on_track(self.track, x, 0.0, self.mass)
        self.reference.invalidate()
        self._refresh_report()
        return self.get_mass_state()

    def release(self) -> MassSnapshot:
        """Let go of the mass. The baseline is captured on the next frame."""
        if self.is_dragging:
            self.run_state = RunState.IDLE
            self.reference.invalidate()
        return self.get_mass_state()

    def place(self, x: float) -> MassSnapshot:
        """Grab, move and release in one call (keyboard / slider input)."""
        ball_x, ball_y = self.viewport.world_to_screen(self.state.x, self.state.y)
        self.grab(ball_x, ball_y)
        self.drag_to(self.viewport.world_to_screen(float(x), 0.0)[0])
        return self.release()

    # ----------------------------------------------------------------
    # PARAMETERS
    # ----------------------------------------------------------------
    def set_gravity(self, value: float) -> None:
        self.params.gravity = float(value)
        logger.debug("gravity set to %.3f", self.params.gravity)

    def set_friction(self, enabled: bool, coefficient: float) -> None:
        self.params.apply_friction(enabled, coefficient)
        logger.debug(
            "friction %s, coefficient %.4f",
            "on" if self.params.friction_enabled else "off",
            self.params.friction_coefficient,
        )

    def set_viewport(self, width: float, height: float) -> None:
        self.viewport = ScreenTransform(
            width=float(width),
            height=float(height),
            bottom_margin=self.viewport.bottom_margin,
        )


# ====================================================================
# DEFAULTS & HEADLESS RUNS
# ====================================================================

@dataclass
class SimulationParams:
    """Container for all headless-run parameters."""
    # Physics
    gravity: float
    track_curvature: float
    mass: float

    # Friction
    friction_enabled: bool
    friction_coefficient: float

    # Run
    start_x: float
    duration_s: float
    frame_dt_s: float
    autostart: bool

    # Viewport (hit testing / drawing)
    viewport_width: float
    viewport_height: float
    bottom_margin: float


def get_default_simulation_params() -> dict:
    """
    Baseline parameter set: 1 kg mass released at rest 100 px left of the
    bottom of the track ``y = 0.005 x²`` under g = 9.8, friction off.

    Returned as a plain dict so it can be updated from YAML/JSON configs
    and then passed into SimulationParams(**params).
    """
    return {
        # ------------------------------------------------------------------
        # Physics
        # ------------------------------------------------------------------
        "gravity": 9.8,            # user-facing g [m/s²], scaled by 20 internally
        "track_curvature": 0.005,  # k in y = k x²
        "mass": 1.0,

        # ------------------------------------------------------------------
        # Friction (linear drag, disabled by default)
        # ------------------------------------------------------------------
        "friction_enabled": False,
        "friction_coefficient": 0.1,  # [1/s], kept while disabled

        # ------------------------------------------------------------------
        # Run control
        # ------------------------------------------------------------------
        "start_x": SimulationConstants.START_X,
        "duration_s": 10.0,
        "frame_dt_s": 1.0 / 60.0,
        "autostart": True,

        # ------------------------------------------------------------------
        # Viewport
        # ------------------------------------------------------------------
        "viewport_width": 800.0,
        "viewport_height": 500.0,
        "bottom_margin": 50.0,
    }


def build_controller(params: SimulationParams | Dict[str, Any]) -> SimulationController:
    """Create a controller from a parameter container or override dict."""
    if not isinstance(params, SimulationParams):
        params = SimulationParams(**_normalize_params(params))

    physics = PhysicsParameters(
        gravity=params.gravity,
        friction_enabled=params.friction_enabled,
        friction_setting=params.friction_coefficient,
        track_curvature=params.track_curvature,
    )
    viewport = ScreenTransform(
        width=params.viewport_width,
        height=params.viewport_height,
        bottom_margin=params.bottom_margin,
    )
    return SimulationController(
        physics,
        mass=params.mass,
        start_x=params.start_x,
        viewport=viewport,
    )


def _history_row(ctrl: SimulationController, frame: int) -> Dict[str, Any]:
    report = ctrl.get_energy_report()
    baseline = ctrl.reference.initial_total_energy
    return {
        "Frame": frame,
        "Time_s": ctrl.sim_time,
        "x": ctrl.state.x,
        "y": ctrl.state.y,
        "v": ctrl.state.v,
        "E_pot_J": report.potential,
        "E_kin_J": report.kinetic,
        "E_thermal_J": report.thermal,
        "E_total_J": report.total,
        "E_baseline_J": np.nan if baseline is None else baseline,
        "W_drag_J": ctrl.integrator.dissipated_work * ctrl.ledger.display_scale,
        "run_state": ctrl.run_state.value,
    }


def run_simulation(params: SimulationParams | Dict[str, Any]) -> pd.DataFrame:
    """
    High-level convenience wrapper: run the frame loop without a display.

    - If a dict is passed, it may contain only overrides; missing fields are
      filled from get_default_simulation_params(), and all types are normalised.
    - One row is recorded for the initial state and one after every frame.

    The returned DataFrame carries ``attrs`` with the frame count, the
    sub-steps per frame, the number of integrator calls and the
    integrator description (``stability``).
    """
    if isinstance(params, SimulationParams):
        sim_params = params
    else:
        sim_params = SimulationParams(**_normalize_params(params))

    frame_dt = sim_params.frame_dt_s
    if frame_dt <= 0.0:
        raise ValueError(f"frame_dt_s must be > 0, got {frame_dt!r}")
    if frame_dt > SimulationConstants.MAX_FRAME_DT:
        logger.warning(
            "frame_dt_s=%.4g s is clamped to %.4g s per frame; simulated time "
            "will be shorter than duration_s.",
            frame_dt,
            SimulationConstants.MAX_FRAME_DT,
        )
    n_frames = int(math.ceil(sim_params.duration_s / frame_dt)) if sim_params.duration_s > 0.0 else 0

    ctrl = build_controller(sim_params)
    if sim_params.autostart:
        ctrl.toggle_run()

    logger.info(
        "Running %d frames of %.4g s (g=%.3f, k=%.4g, friction=%.4g, x0=%.1f)",
        n_frames,
        frame_dt,
        sim_params.gravity,
        sim_params.track_curvature,
        ctrl.params.friction_coefficient,
        sim_params.start_x,
    )

    rows = [_history_row(ctrl, 0)]
    for frame in range(1, n_frames + 1):
        ctrl.advance_frame(frame_dt)
        rows.append(_history_row(ctrl, frame))

    df = pd.DataFrame(rows)
    df.attrs["frames"] = n_frames
    df.attrs["sub_steps"] = SimulationConstants.SUB_STEPS
    df.attrs["integrator_steps"] = ctrl.integrator.n_steps
    df.attrs["stability"] = ctrl.integrator.get_stability_info()
    return df


def _normalize_params(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge overrides with the defaults, drop unknown keys and coerce types."""
    raw = get_default_simulation_params()
    raw.update(overrides or {})

    # Be forgiving with YAML/CLI configs: allow extra *metadata* keys
    allowed = {f.name for f in fields(SimulationParams)}
    extra_ok = {"case_name", "notes", "description", "title", "tags"}
    unknown = sorted(set(raw.keys()) - allowed)
    unknown_nonmeta = [k for k in unknown if k not in extra_ok]
    if unknown_nonmeta:
        logger.warning(
            "Ignoring %d unknown SimulationParams key(s): %s",
            len(unknown_nonmeta),
            ", ".join(unknown_nonmeta),
        )
    raw = {k: raw[k] for k in allowed if k in raw}
    return _coerce_scalar_types_for_simulation(raw)


def _coerce_scalar_types_for_simulation(base: dict) -> dict:
    """
    Normalize types coming from YAML/JSON/CLI before constructing SimulationParams.

    - Scalars that should be floats (incl. strings like '9.81') become float.
    - Boolean switches accept bools, 0/1 and the usual yes/no strings.
    """
    data: dict = dict(base)

    def _to_float(val, name: str):
        if isinstance(val, bool):
            raise TypeError(f"Parameter '{name}' expects a float, got a bool.")
        if isinstance(val, (float, int)):
            return float(val)
        if isinstance(val, str):
            try:
                return float(val)
            except ValueError as exc:
                raise ValueError(
                    f"Parameter '{name}' expects a float-compatible value, "
                    f"got {val!r} (type {type(val).__name__})."
                ) from exc
        raise TypeError(
            f"Parameter '{name}' expects a scalar float, got {val!r} "
            f"(type {type(val).__name__})."
        )

    def _to_bool(val, name: str):
        if isinstance(val, bool):
            return val
        if isinstance(val, (int, float)) and val in (0, 1):
            return bool(val)
        if isinstance(val, str) and val.strip().lower() in {"true", "yes", "on", "1"}:
            return True
        if isinstance(val, str) and val.strip().lower() in {"false", "no", "off", "0"}:
            return False
        raise ValueError(f"Parameter '{name}' expects a boolean, got {val!r}.")

    scalar_float_keys = [
        "gravity",
        "track_curvature",
        "mass",
        "friction_coefficient",
        "start_x",
        "duration_s",
        "frame_dt_s",
        "viewport_width",
        "viewport_height",
        "bottom_margin",
    ]
    for key in scalar_float_keys:
        if key in data and data[key] is not None:
            data[key] = _to_float(data[key], key)

    for key in ("friction_enabled", "autostart"):
        if key in data and data[key] is not None:
            data[key] = _to_bool(data[key], key)

    return data
