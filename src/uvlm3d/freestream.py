from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import math
import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.float64]


@dataclass(slots=True)
class Reference:
    """Body reference frame.

    r: reference point (rotation centre) [m]
    v: velocity of the body frame [m/s]
    """
    r: tuple[float, float, float] = (0.0, 0.0, 0.0)
    v: tuple[float, float, float] = (0.0, 0.0, 0.0)


class ExternalVelocity(Protocol):
    """Anything that maps a point in the body frame to an ambient velocity."""

    def velocity(self, point: FloatArray, reference: Reference) -> FloatArray: ...


@dataclass(slots=True)
class Freestream:
    """Uniform freestream seen from a translating, rotating body frame.

    vinf: freestream speed [m/s]
    alpha: angle of attack [rad]
    beta: sideslip angle [rad]
    omega: body rotation rates about the reference point [rad/s]
    """
    vinf: float = 1.0
    alpha: float = 0.0
    beta: float = 0.0
    omega: tuple[float, float, float] = field(default=(0.0, 0.0, 0.0))

    def __post_init__(self) -> None:
        if not (math.isfinite(self.vinf) and math.isfinite(self.alpha) and math.isfinite(self.beta)):
            raise ValueError("freestream parameters must be finite.")

    def uniform(self) -> FloatArray:
        ca, sa = math.cos(self.alpha), math.sin(self.alpha)
        cb, sb = math.cos(self.beta), math.sin(self.beta)
        return self.vinf * np.array((ca * cb, -sb, sa * cb), dtype=np.float64)

    def direction(self) -> FloatArray:
        """Unit vector along the uniform part of the freestream."""
        u = self.uniform()
        n = float(np.linalg.norm(u))
        if n == 0.0:
            return np.array((1.0, 0.0, 0.0), dtype=np.float64)
        return u / n

    def velocity(self, point: FloatArray, reference: Reference) -> FloatArray:
        """Air velocity at ``point`` relative to the moving, rotating body frame."""
        r = np.asarray(point, dtype=np.float64) - np.asarray(reference.r, dtype=np.float64)
        v = self.uniform() - np.asarray(reference.v, dtype=np.float64)
        return v - np.cross(np.asarray(self.omega, dtype=np.float64), r)
