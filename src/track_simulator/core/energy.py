"""Energy accounting for the track simulator.

Potential and kinetic energy follow directly from the state. Thermal
energy is the conservation residual

    E_thermal = E_baseline - (E_pot + E_kin),   clipped at 0

measured against the baseline captured when free motion begins. It is
*not* the time integral of the drag force used by the integrator; the two
are independent approximations of the same loss and are allowed to drift
apart by the integration error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .state import MassState, PhysicsParameters


@dataclass
class EnergyReference:
    """Baseline for the thermal residual.

    ``initial_total_energy`` is ``None`` while unset. A baseline of exactly
    zero is a valid captured value and does not trigger a new capture.
    """

    initial_total_energy: Optional[float] = None
    thermal_energy: float = 0.0

    @property
    def is_set(self) -> bool:
        return self.initial_total_energy is not None

    def invalidate(self) -> None:
        self.initial_total_energy = None
        self.thermal_energy = 0.0


@dataclass(frozen=True)
class EnergyReport:
    """Energy partition of one frame (display units, shown as J)."""

    potential: float
    kinetic: float
    thermal: float
    total: float

    def bar_fractions(self, min_denominator: float = 10.0) -> Dict[str, float]:
        """Fractions of each component for bar charts.

        The denominator is ``max(total, min_denominator)`` so that a nearly
        empty system does not blow the bars up.
        """
        denom = max(self.total, float(min_denominator))
        return {
            "potential": self.potential / denom,
            "kinetic": self.kinetic / denom,
            "thermal": self.thermal / denom,
            "total": 1.0,
        }

    def as_dict(self) -> Dict[str, float]:
        return {
            "potential": self.potential,
            "kinetic": self.kinetic,
            "thermal": self.thermal,
            "total": self.total,
        }


class EnergyLedger:
    """Derives the energy report from the state and the baseline."""

    DISPLAY_SCALE = 0.0005  # display units -> J shown on screen

    def __init__(self, display_scale: float = DISPLAY_SCALE):
        self.display_scale = float(display_scale)

    def potential(self, state: MassState, params: PhysicsParameters) -> float:
        return state.mass * params.gravity_scaled * state.y * self.display_scale

    def kinetic(self, state: MassState) -> float:
        return 0.5 * state.mass * state.v * state.v * self.display_scale

    def compute(
        self,
        state: MassState,
        params: PhysicsParameters,
        reference: EnergyReference,
        is_dragging: bool,
    ) -> EnergyReport:
        """Compute the report and update ``reference`` in place.

        While dragging, the baseline follows the hand-placed mass and no
        thermal energy is shown. Otherwise the baseline is captured lazily
        on the first positive mechanical-energy reading.
        """
        pe = self.potential(state, params)
        ke = self.kinetic(state)
        mechanical = pe + ke

        if is_dragging:
            reference.initial_total_energy = mechanical
            thermal = 0.0
        else:
            if reference.initial_total_energy is None and mechanical > 0.0:
                reference.initial_total_energy = mechanical
            if reference.initial_total_energy is not None:
                # Integration error can push pe + ke above the baseline
                thermal = max(0.0, reference.initial_total_energy - mechanical)
            else:
                thermal = 0.0

        reference.thermal_energy = thermal
        return EnergyReport(
            potential=pe,
            kinetic=ke,
            thermal=thermal,
            total=pe + ke + thermal,
        )
