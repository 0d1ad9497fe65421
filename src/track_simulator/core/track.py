"""Parabolic track geometry.

The mass is constrained to the curve

    y(x) = k * x**2

where ``k`` is the curvature coefficient and ``x`` is the horizontal
coordinate (0 is the bottom of the bowl). All quantities are in display
units (pixels), the same units used by the drawing layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class ParabolicTrack:
    """Stateless description of the track ``y = k x²``.

    Every method accepts a scalar or a numpy array and returns the same
    kind of object, so the track can be sampled in one call for drawing.

    Attributes
    ----------
    curvature : float
        Curvature coefficient ``k`` of the parabola.

    Examples
    --------
    >>> track = ParabolicTrack(curvature=0.005)
    >>> track.height(-100.0)
    50.0
    >>> track.slope(-100.0)
    -1.0
    """

    curvature: float = 0.005

    def height(self, x: ArrayLike) -> ArrayLike:
        """Track height ``k x²``."""
        return self.curvature * x * x

    def slope(self, x: ArrayLike) -> ArrayLike:
        """First derivative ``dy/dx = 2 k x``."""
        return 2.0 * self.curvature * x

    def sin_theta(self, x: ArrayLike) -> ArrayLike:
        """Sine of the local inclination angle."""
        s = self.slope(x)
        return s / np.sqrt(1.0 + s * s)

    def cos_theta(self, x: ArrayLike) -> ArrayLike:
        """Cosine of the local inclination angle (always positive)."""
        s = self.slope(x)
        return 1.0 / np.sqrt(1.0 + s * s)

    def tangent(self, x: float) -> Tuple[float, float]:
        """Unit tangent pointing towards increasing ``x``."""
        return float(self.cos_theta(x)), float(self.sin_theta(x))

    def normal(self, x: float) -> Tuple[float, float]:
        """Unit normal pointing to the concave (upper) side of the track."""
        return -float(self.sin_theta(x)), float(self.cos_theta(x))

    def sample(self, x_min: float, x_max: float, n_points: int = 201) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(x, y)`` arrays along the track for plotting."""
        xs = np.linspace(float(x_min), float(x_max), int(n_points))
        return xs, self.height(xs)
