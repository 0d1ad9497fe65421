"""Friction models for the track simulator.

Only viscous (linear) drag acts on the mass. The drag is applied as a
deceleration along the track tangent inside the integrator; the thermal
energy shown to the user is *not* integrated from this force but derived
from the energy balance (see :mod:`track_simulator.core.energy`).
"""

from __future__ import annotations


class FrictionModels:
    """Collection of friction laws acting along the track tangent.

    Examples
    --------
    >>> FrictionModels.linear_drag(v=50.0, coefficient=0.2)
    -10.0
    >>> FrictionModels.dissipation_rate(v=50.0, coefficient=0.2, mass=1.0)
    500.0
    """

    @staticmethod
    def linear_drag(v: float, coefficient: float) -> float:
        """Tangential deceleration ``-μ v`` opposing the velocity.

        Parameters
        ----------
        v : float
            Signed tangential velocity.
        coefficient : float
            Drag coefficient ``μ`` (1/s). Zero disables the term.

        Returns
        -------
        float
            Acceleration contribution along the tangent.
        """
        if coefficient <= 0.0:
            return 0.0
        return -float(coefficient) * float(v)

    @staticmethod
    def dissipation_rate(v: float, coefficient: float, mass: float) -> float:
        """Instantaneous power removed by the drag, ``m μ v²`` (>= 0)."""
        if coefficient <= 0.0:
            return 0.0
        return float(mass) * float(coefficient) * float(v) * float(v)
