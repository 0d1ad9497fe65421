"""Simulation state containers.

``MassState`` is immutable: every integration step or drag gesture produces
a new instance, and the height ``y`` is only ever derived from the track at
construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .track import ParabolicTrack

# Converts the user-facing g value (m/s²) into display units (px/s²).
GRAVITY_SCALE = 20.0


class RunState(str, Enum):
    """Controller states."""

    IDLE = "idle"
    RUNNING = "running"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class MassState:
    """Position and tangential velocity of the mass on the track."""

    x: float
    y: float
    v: float
    mass: float = 1.0

    @classmethod
    def on_track(cls, track: ParabolicTrack, x: float, v: float = 0.0, mass: float = 1.0) -> "MassState":
        """Build a state whose height lies on ``track``."""
        x = float(x)
        return cls(x=x, y=float(track.height(x)), v=float(v), mass=float(mass))


@dataclass
class PhysicsParameters:
    """Parameters read by the integrator and the energy ledger every step.

    ``friction_setting`` keeps the slider value while friction is switched
    off; ``friction_coefficient`` is what the integrator actually uses and
    is zero whenever friction is disabled.
    """

    gravity: float = 9.8
    friction_enabled: bool = False
    friction_setting: float = 0.1
    track_curvature: float = 0.005
    friction_coefficient: float = 0.0

    def __post_init__(self) -> None:
        self.apply_friction(self.friction_enabled, self.friction_setting)

    @property
    def gravity_scaled(self) -> float:
        return self.gravity * GRAVITY_SCALE

    def apply_friction(self, enabled: bool, coefficient: float) -> None:
        self.friction_enabled = bool(enabled)
        self.friction_setting = max(0.0, float(coefficient))
        self.friction_coefficient = self.friction_setting if self.friction_enabled else 0.0


@dataclass(frozen=True)
class MassSnapshot:
    """Read-only view handed to the presentation layer."""

    x: float
    y: float
    v: float
    run_state: RunState
    sim_time: float = 0.0
