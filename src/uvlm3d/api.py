from __future__ import annotations

from dataclasses import dataclass, field

import math

import numpy as np

from .panels import TRAILING_LENGTH


# ----------------------
# Configuration objects
# ----------------------

@dataclass(slots=True)
class NumbaConfig:
    """Toggle Numba JIT for batched filament evaluations (influence matrices)."""
    enabled: bool = False


@dataclass(slots=True)
class NumericsConfig:
    """Numerical options shared by every induced-velocity evaluation.

    core_size: finite core size given to newly shed wake panels
    xhat: trailing-vortex direction; None -> freestream direction
    trailing_length: length standing in for infinity along trailing vortices
    """
    core_size: float = 0.0
    xhat: tuple[float, float, float] | None = None
    trailing_length: float = TRAILING_LENGTH
    numba: NumbaConfig = field(default_factory=NumbaConfig)

    def __post_init__(self) -> None:
        if not (math.isfinite(self.core_size) and self.core_size >= 0.0):
            raise ValueError("core_size must be finite and non-negative.")
        if not (math.isfinite(self.trailing_length) and self.trailing_length > 0.0):
            raise ValueError("trailing_length must be positive.")
        if self.xhat is not None:
            x = np.asarray(self.xhat, dtype=np.float64)
            if x.shape != (3,) or not np.isfinite(x).all():
                raise ValueError("xhat must be a finite 3-vector.")
            n = float(np.linalg.norm(x))
            if n == 0.0:
                raise ValueError("xhat must be non-zero.")
            self.xhat = tuple(float(c) for c in x / n)


@dataclass(slots=True)
class WakeConfig:
    """Wake storage and topology.

    capacity: maximum number of shed rows kept per surface
    trailing_vortices: close the last wake row with semi-infinite trailing vortices
    symmetric: mirror every surface and wake across y = 0
    """
    capacity: int = 20
    trailing_vortices: bool = False
    symmetric: bool = False

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be positive.")


@dataclass(slots=True)
class SimulationConfig:
    """High-level run controls."""
    dt: float = 1e-2
    steps: int = 100

    def __post_init__(self) -> None:
        if not (math.isfinite(self.dt) and self.dt > 0.0):
            raise ValueError("dt must be positive.")
        if self.steps < 0:
            raise ValueError("steps must be non-negative.")
