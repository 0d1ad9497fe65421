"""Semi-implicit Euler time integration along the track.

The mass has a single degree of freedom: its horizontal coordinate ``x``.
Motion is described by the signed tangential speed ``v``; gravity is
projected onto the local tangent of the track and a linear drag may be
added. One call to :meth:`SemiImplicitEulerIntegrator.advance` performs
exactly one sub-step; the caller is responsible for sub-stepping a frame.
"""

from __future__ import annotations

import logging

from .friction import FrictionModels
from .state import MassState, PhysicsParameters
from .track import ParabolicTrack


logger = logging.getLogger(__name__)


class SemiImplicitEulerIntegrator:
    """Semi-implicit Euler stepper for a mass constrained to a curve.

    Mathematical Formulation
    ------------------------
    With ``θ`` the local inclination of the track at ``x_n``:

        a_n     = -g_s sin θ - μ v_n
        v_{n+1} = v_n + h a_n
        x_{n+1} = x_n + h v_{n+1} cos θ

    The velocity is updated before the position (semi-implicit). Because
    ``cos θ`` is taken at ``x_n`` the map is not exactly symplectic: in the
    conservative case the energy error stays small over runs of some tens
    of seconds but grows slowly (about +1 % after 60 s at 60 frames/s).

    Attributes
    ----------
    max_sub_step : float
        Largest sub-step for which the tangential-acceleration
        approximation is considered valid. Larger steps are integrated
        anyway, with a one-time warning.
    n_steps : int
        Number of sub-steps performed since the last counter reset.
    dissipated_work : float
        Work removed by the drag term, ``Σ m μ v² h`` (simulation units,
        not scaled for display).

    Notes
    -----
    - The thermal energy reported to the user is computed independently
      from the energy balance; ``dissipated_work`` is only a diagnostic.
    - The integrator never raises: finite inputs give finite outputs for
      the step sizes used by the controller.
    """

    def __init__(self, max_sub_step: float = 0.01):
        self.max_sub_step = float(max_sub_step)
        self.n_steps: int = 0
        self.dissipated_work: float = 0.0
        self._warned_large_step = False

    def acceleration(self, state: MassState, params: PhysicsParameters, track: ParabolicTrack) -> float:
        """Tangential acceleration at the current state."""
        a = -params.gravity_scaled * float(track.sin_theta(state.x))
        if params.friction_coefficient > 0.0:
            a += FrictionModels.linear_drag(state.v, params.friction_coefficient)
        return a

    def advance(
        self,
        state: MassState,
        params: PhysicsParameters,
        track: ParabolicTrack,
        dt: float,
    ) -> MassState:
        """Advance ``state`` by one sub-step of length ``dt``.

        Parameters
        ----------
        state : MassState
            Current state. It is not modified.
        params : PhysicsParameters
            Gravity and drag coefficient, read once per call.
        track : ParabolicTrack
            Track geometry.
        dt : float
            Sub-step length in seconds.

        Returns
        -------
        MassState
            New state with updated ``x`` and ``v``; ``y`` follows from
            the track at the new ``x``.
        """
        if dt > self.max_sub_step and not self._warned_large_step:
            logger.warning(
                "Sub-step dt=%.4g s exceeds %.4g s; the tangential approximation "
                "is only locally valid. Sub-step the frame before integrating.",
                dt,
                self.max_sub_step,
            )
            self._warned_large_step = True

        cos_theta = float(track.cos_theta(state.x))
        a_t = self.acceleration(state, params, track)

        v_new = state.v + a_t * dt
        x_new = state.x + v_new * cos_theta * dt

        self.n_steps += 1
        if params.friction_coefficient > 0.0:
            self.dissipated_work += (
                FrictionModels.dissipation_rate(v_new, params.friction_coefficient, state.mass) * dt
            )

        return MassState.on_track(track, x_new, v_new, state.mass)

    def reset_counters(self) -> None:
        """Reset the step counter and the drag work diagnostic."""
        self.n_steps = 0
        self.dissipated_work = 0.0

    def get_stability_info(self) -> dict:
        """Describe the scheme for reports and the CLI."""
        return {
            "method": "semi-implicit Euler",
            "order": 1,
            "symplectic": False,
            "max_sub_step": self.max_sub_step,
            "n_steps": self.n_steps,
        }
