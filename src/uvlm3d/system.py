from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .api import NumericsConfig, SimulationConfig, WakeConfig
from .filament import as_points
from .freestream import ExternalVelocity, Reference
from .influence import as_grid, induced_velocities, influence_coefficients
from .panels import circulation, trailing_edge_corners
from .wake import WakeGrid, shed_wake, translate_wake_inplace, wake_velocities

FloatArray = NDArray[np.float64]

logger = logging.getLogger(__name__)


class WakeSystem:
    """Lifting surfaces and their free wakes, advanced with a fixed time step.

    Every step first samples the velocity at all wake corners from the frozen
    geometry, then translates every wake and sheds a new row from each
    trailing edge using the trailing-edge velocities of that same pass.
    """

    def __init__(
        self,
        surfaces: Sequence[np.ndarray],
        surface_ids: Sequence[int] | None = None,
        *,
        freestream: ExternalVelocity,
        reference: Reference | None = None,
        wake: WakeConfig | None = None,
        numerics: NumericsConfig | None = None,
    ) -> None:
        grids = self._check_surfaces(surfaces)
        if surface_ids is None:
            surface_ids = list(range(len(grids)))
        elif len(surface_ids) != len(grids):
            raise ValueError("surface_ids must hold one ID per surface.")

        self._surfaces: list[np.ndarray] = grids
        self._ids: list[int] = [int(k) for k in surface_ids]
        self._freestream = freestream
        self._reference = reference or Reference()
        self._wake_cfg = wake or WakeConfig()
        self._numerics = numerics or NumericsConfig()

        if self._numerics.xhat is not None:
            self._xhat: FloatArray = np.asarray(self._numerics.xhat, dtype=np.float64)
        elif hasattr(freestream, "direction"):
            self._xhat = np.asarray(freestream.direction(), dtype=np.float64)
        else:
            self._xhat = np.array((1.0, 0.0, 0.0), dtype=np.float64)

        self._wakes: list[WakeGrid] = [
            WakeGrid.from_trailing_edge(trailing_edge_corners(s), self._wake_cfg.capacity, self._numerics.core_size)
            for s in grids
        ]
        self._t: float = 0.0
        self._nstep: int = 0
        self._last_v: list[FloatArray] | None = None

        logger.info(
            "WakeSystem with %d surface(s), wake capacity %d, symmetric=%s, trailing_vortices=%s.",
            len(grids), self._wake_cfg.capacity, self._wake_cfg.symmetric, self._wake_cfg.trailing_vortices,
        )

    @staticmethod
    def _check_surfaces(surfaces: Sequence[np.ndarray]) -> list[np.ndarray]:
        if len(surfaces) == 0:
            raise ValueError("at least one surface is required.")
        grids = [as_grid(s, "surface").copy() for s in surfaces]
        for g in grids:
            if g.size == 0:
                raise ValueError("surfaces must hold at least one panel.")
        return grids

    # -------- properties --------
    @property
    def time(self) -> float: return self._t

    @property
    def nstep(self) -> int: return self._nstep

    @property
    def surfaces(self) -> list[np.ndarray]: return [s.copy() for s in self._surfaces]

    @property
    def wakes(self) -> list[WakeGrid]: return self._wakes

    @property
    def surface_ids(self) -> list[int]: return list(self._ids)

    @property
    def xhat(self) -> FloatArray: return self._xhat.copy()

    def set_surfaces(self, surfaces: Sequence[np.ndarray]) -> None:
        """Replace the bound panels, e.g. after solving for new circulation."""
        grids = self._check_surfaces(surfaces)
        if len(grids) != len(self._surfaces):
            raise ValueError(f"expected {len(self._surfaces)} surfaces, got {len(grids)}.")
        for g, w in zip(grids, self._wakes):
            if g.shape[1] != w.nspan:
                raise ValueError("surface spanwise panel count does not match its wake.")
        self._surfaces = grids

    # -------- velocities --------
    def velocities(self) -> list[FloatArray]:
        """Velocities at every wake corner, one (capacity+1, ns+1, 3) buffer per wake."""
        return wake_velocities(
            None, self._surfaces, self._wakes, self._ids,
            self._wake_cfg.trailing_vortices, self._wake_cfg.symmetric,
            self._reference, self._freestream,
            xhat=self._xhat, trailing_length=self._numerics.trailing_length,
            jit=self._numerics.numba.enabled,
        )

    def induced_velocities(self, points: np.ndarray | Sequence[Sequence[float]], *, surfaces: bool = True, wakes: bool = True) -> FloatArray:
        """Velocity induced at (m,3) off-body points by the bound panels and/or the wakes."""
        pts = as_points(points, "points")
        out = np.zeros_like(pts)
        kw = dict(
            symmetric=self._wake_cfg.symmetric,
            xhat=self._xhat,
            trailing_length=self._numerics.trailing_length,
            jit=self._numerics.numba.enabled,
        )
        if surfaces:
            for s in self._surfaces:
                out += induced_velocities(pts, s, trailing_vortices=False, **kw)
        if wakes:
            for w in self._wakes:
                out += induced_velocities(
                    pts, w.panels, trailing_vortices=self._wake_cfg.trailing_vortices, nrows=w.nwake, **kw,
                )
        return out

    def influence_coefficients(self, isurf: int) -> FloatArray:
        """Normal-velocity influence matrix of surface ``isurf`` on its own control points."""
        grid = self._surfaces[isurf]
        cps = np.array([p.control_point for p in grid.ravel()], dtype=np.float64)
        nrm = np.array([p.normal for p in grid.ravel()], dtype=np.float64)
        return influence_coefficients(
            cps, nrm, grid,
            symmetric=self._wake_cfg.symmetric,
            trailing_vortices=self._wake_cfg.trailing_vortices,
            xhat=self._xhat,
            trailing_length=self._numerics.trailing_length,
            jit=self._numerics.numba.enabled,
        )

    # -------- time stepping --------
    def _trailing_edge_circulation(self, gamma_te: Sequence[np.ndarray] | None) -> list[FloatArray]:
        if gamma_te is None:
            return [circulation(s)[-1] for s in self._surfaces]
        if len(gamma_te) != len(self._surfaces):
            raise ValueError("gamma_te must hold one array per surface.")
        return [np.asarray(g, dtype=np.float64) for g in gamma_te]

    def step(self, dt: float, gamma_te: Sequence[np.ndarray] | None = None) -> None:
        """Advance every wake by ``dt`` and shed one row from each trailing edge."""
        if not (np.isfinite(dt) and dt > 0.0):
            raise ValueError("dt must be positive.")
        gte = self._trailing_edge_circulation(gamma_te)

        # phase 1: read-only sampling
        V = self.velocities()

        # phase 2: mutate
        for w, v in zip(self._wakes, V):
            translate_wake_inplace(w, v, dt)
        for s, w, v, g in zip(self._surfaces, self._wakes, V, gte):
            shed_wake(w, v[0], dt, g, trailing_edge=trailing_edge_corners(s))

        self._last_v = V
        self._t += dt
        self._nstep += 1
        logger.debug("Step %d done (t=%.6g); wake rows %s.", self._nstep, self._t, [w.nwake for w in self._wakes])

    def run(self, config: SimulationConfig, gamma_te: Sequence[np.ndarray] | None = None) -> WakeSystem:
        for _ in range(config.steps):
            self.step(config.dt, gamma_te)
        return self

    def diagnostics(self) -> dict[str, Any]:
        """Scalar summary of the current state."""
        wake_gamma = 0.0
        for w in self._wakes:
            wake_gamma += float(w.circulation()[: w.nwake].sum())
        vmax = 0.0
        if self._last_v is not None:
            for v, w in zip(self._last_v, self._wakes):
                speeds = np.linalg.norm(v[: w.nwake + 1], axis=-1)
                vmax = max(vmax, float(speeds.max()))
        return {
            "time": self._t,
            "steps": self._nstep,
            "wake_rows": [w.nwake for w in self._wakes],
            "wake_circulation": wake_gamma,
            "max_corner_speed": vmax,
        }
