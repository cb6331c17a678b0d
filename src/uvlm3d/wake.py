from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from .freestream import ExternalVelocity, Reference
from .influence import FilamentSet, as_grid, filament_set_velocities, grid_filaments, grid_induced_velocity
from .panels import TRAILING_LENGTH, XHAT, ArrayLike3, WakePanel

FloatArray = NDArray[np.float64]

logger = logging.getLogger(__name__)


# ---------------------------
# Wake storage
# ---------------------------
class WakeGrid:
    """Fixed-capacity ring buffer of wake panel rows.

    Logical row 0 is always the most recently shed row; only the first
    ``nwake`` logical rows hold shed vorticity. Shedding overwrites the oldest
    row and moves the head offset instead of shifting storage.
    """

    def __init__(self, panels: np.ndarray | Sequence, nwake: int = 0) -> None:
        buf = as_grid(panels, "wake panels")
        if buf.shape[0] < 1 or buf.shape[1] < 1:
            raise ValueError("wake must have at least one row and one column.")
        if not 0 <= nwake <= buf.shape[0]:
            raise ValueError(f"nwake must be in [0, {buf.shape[0]}].")
        self._buf: np.ndarray = buf.copy()
        self._head: int = 0
        self._nwake: int = int(nwake)

    @classmethod
    def from_trailing_edge(cls, trailing_edge: np.ndarray | Sequence, capacity: int, core_size: float = 0.0) -> WakeGrid:
        """Empty wake whose placeholder panels collapse onto the trailing edge."""
        te = np.asarray(trailing_edge, dtype=np.float64)
        if te.ndim != 2 or te.shape[1] != 3 or te.shape[0] < 2:
            raise ValueError("trailing_edge must have shape (ns+1, 3).")
        if capacity < 1:
            raise ValueError("capacity must be positive.")
        ns = te.shape[0] - 1
        buf = np.empty((capacity, ns), dtype=object)
        for i in range(capacity):
            for j in range(ns):
                buf[i, j] = WakePanel(te[j], te[j + 1], te[j], te[j + 1], core_size, 0.0)
        return cls(buf, nwake=0)

    # -------- properties --------
    @property
    def capacity(self) -> int: return int(self._buf.shape[0])

    @property
    def nspan(self) -> int: return int(self._buf.shape[1])

    @property
    def nwake(self) -> int: return self._nwake

    @property
    def shape(self) -> tuple[int, int]: return (self.capacity, self.nspan)

    @property
    def panels(self) -> np.ndarray:
        """Panels in logical row order (newest first)."""
        order = (self._head + np.arange(self.capacity)) % self.capacity
        return self._buf[order]

    # -------- indexing --------
    def _row(self, i: int) -> int:
        if not 0 <= i < self.capacity:
            raise IndexError(f"wake row {i} out of range for capacity {self.capacity}.")
        return (self._head + i) % self.capacity

    def __getitem__(self, key: tuple[int, int]) -> WakePanel:
        i, j = key
        return self._buf[self._row(i), j]

    def __setitem__(self, key: tuple[int, int], panel: WakePanel) -> None:
        i, j = key
        self._buf[self._row(i), j] = panel

    def push_row(self, row: Sequence[WakePanel]) -> None:
        """Overwrite the oldest row with ``row`` and make it logical row 0."""
        if len(row) != self.nspan:
            raise ValueError(f"row must hold {self.nspan} panels.")
        self._head = (self._head - 1) % self.capacity
        for j, panel in enumerate(row):
            self._buf[self._head, j] = panel
        self._nwake = min(self._nwake + 1, self.capacity)

    def copy(self) -> WakeGrid:
        return WakeGrid(self.panels, nwake=self._nwake)

    # -------- derived arrays --------
    def circulation(self) -> FloatArray:
        grid = self.panels
        out = np.empty(grid.shape, dtype=np.float64)
        for idx, p in np.ndenumerate(grid):
            out[idx] = p.gamma
        return out

    def corners(self, nwake: int | None = None) -> FloatArray:
        """Distinct corner positions (n+1, ns+1, 3) of the first ``n`` rows."""
        n = self._check_nwake(nwake)
        ns = self.nspan
        out = np.empty((n + 1, ns + 1, 3), dtype=np.float64)
        for r in range(n + 1):
            # top corners of row r, or bottom corners of the last row
            if r < n or n == 0:
                row = [self[r, j] for j in range(ns)]
                out[r, :ns] = [p.rtl for p in row]
                out[r, ns] = row[-1].rtr
            else:
                row = [self[r - 1, j] for j in range(ns)]
                out[r, :ns] = [p.rbl for p in row]
                out[r, ns] = row[-1].rbr
        return out

    def velocity_buffer(self) -> FloatArray:
        """Zeroed corner-velocity storage matching this wake."""
        return np.zeros((self.capacity + 1, self.nspan + 1, 3), dtype=np.float64)

    def _check_nwake(self, nwake: int | None) -> int:
        if nwake is None:
            return self._nwake
        if not 0 <= nwake <= self.capacity:
            raise ValueError(f"nwake must be in [0, {self.capacity}].")
        return int(nwake)

    def __repr__(self) -> str:
        return f"WakeGrid(capacity={self.capacity}, nspan={self.nspan}, nwake={self._nwake})"


def _check_buffer(V: np.ndarray, wake: WakeGrid) -> None:
    expected = (wake.capacity + 1, wake.nspan + 1, 3)
    if np.shape(V) != expected:
        raise ValueError(f"velocity buffer has shape {np.shape(V)}, expected {expected}.")


# ---------------------------
# Induced velocity
# ---------------------------
def wake_induced_velocity(
    rcp: ArrayLike3,
    wake: WakeGrid | np.ndarray,
    symmetric: bool,
    same_surface: bool,
    same_id: bool,
    trailing_vortices: bool,
    *,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    nwake: int | None = None,
    index: tuple[int, int] | None = None,
    jit: bool = False,
) -> FloatArray:
    """Induced velocity at ``rcp`` from the first ``nwake`` rows of a wake.

    ``index`` locates ``rcp`` on the wake's corner grid ((0, 0) is the top
    left corner, (nwake, ns) the bottom right one) when ``same_surface``.
    """
    if isinstance(wake, WakeGrid):
        nwake = wake._check_nwake(nwake)
        panels = wake.panels
    else:
        panels = wake
    return grid_induced_velocity(
        rcp, panels, symmetric, same_surface, same_id, trailing_vortices,
        xhat=xhat, trailing_length=trailing_length, nrows=nwake, index=index, jit=jit,
    )


def wake_velocities(
    V: list[FloatArray] | None,
    surfaces: Sequence[np.ndarray],
    wakes: Sequence[WakeGrid],
    surface_ids: Sequence[int],
    trailing_vortices: bool,
    symmetric: bool,
    reference: Reference,
    freestream: ExternalVelocity,
    *,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    nwake: Sequence[int] | None = None,
    jit: bool = False,
) -> list[FloatArray]:
    """Velocities at the corners of every wake.

    Each corner gets the external velocity plus the bound-vortex velocity of
    every surface plus the velocity of every wake. Results are written into
    the buffers ``V`` (one per wake, see :meth:`WakeGrid.velocity_buffer`);
    wake geometry is only read, never modified. The filaments of every grid
    are collected once and evaluated at all corners of a wake in one batch.
    """
    nsurf = len(surfaces)
    if len(wakes) != nsurf or len(surface_ids) != nsurf:
        raise ValueError("surfaces, wakes and surface_ids must have the same length.")
    if nwake is None:
        nwake = [w.nwake for w in wakes]
    elif len(nwake) != nsurf:
        raise ValueError("nwake must hold one entry per wake.")
    nwake = [w._check_nwake(n) for w, n in zip(wakes, nwake)]
    if V is None:
        V = [w.velocity_buffer() for w in wakes]
    elif len(V) != nsurf:
        raise ValueError("V must hold one buffer per wake.")
    for buf, w in zip(V, wakes):
        _check_buffer(buf, w)

    surface_grids = [as_grid(s, "surface") for s in surfaces]
    for s, w in zip(surface_grids, wakes):
        if s.shape[1] != w.nspan:
            raise ValueError("wake and surface spanwise panel counts differ.")
    wake_grids = [w.panels for w in wakes]

    # filament sets keyed by (grid, finite_core); a surface sharing an ID is seen without a core
    bound: dict[tuple[int, bool], FilamentSet] = {}
    shed: dict[tuple[int, bool], FilamentSet] = {}

    def filaments(cache: dict, jsurf: int, finite_core: bool, **kw) -> FilamentSet:
        key = (jsurf, finite_core)
        if key not in cache:
            cache[key] = grid_filaments(
                finite_core=finite_core, xhat=xhat, trailing_length=trailing_length, **kw,
            )
        return cache[key]

    for isurf, receiving in enumerate(wakes):
        nw = nwake[isurf]
        points = receiving.corners(nw).reshape(-1, 3)
        v = np.array([freestream.velocity(rc, reference) for rc in points], dtype=np.float64)
        for jsurf in range(nsurf):
            finite_core = surface_ids[isurf] != surface_ids[jsurf]

            # bound vorticity only; the wake carries the trailing vorticity
            fils = filaments(bound, jsurf, finite_core, panels=surface_grids[jsurf])
            v += filament_set_velocities(points, fils, symmetric=symmetric, jit=jit)

            fils = filaments(
                shed, jsurf, finite_core,
                panels=wake_grids[jsurf], nrows=nwake[jsurf], trailing_vortices=trailing_vortices,
            )
            # corners of the receiving wake are numbered like the corner grid of its own filaments
            corners = np.arange(points.shape[0]) if isurf == jsurf else None
            v += filament_set_velocities(points, fils, symmetric=symmetric, corners=corners, jit=jit)
        V[isurf][: nw + 1] = v.reshape(nw + 1, receiving.nspan + 1, 3)

    logger.debug("Sampled wake corner velocities for %d surface(s), rows %s.", nsurf, nwake)
    return V


# ---------------------------
# Evolution
# ---------------------------
def translate_wake_panel(panel: WakePanel, V: np.ndarray, dt: float) -> WakePanel:
    """Move the corners of ``panel`` by their velocities ``V`` (2,2,3) over ``dt``.

    ``V[0, 0]``, ``V[0, 1]``, ``V[1, 0]``, ``V[1, 1]`` are the top-left,
    top-right, bottom-left and bottom-right corner velocities. Circulation is
    scaled by the ratio of new to old total edge length (vortex stretching);
    the core size is carried over.
    """
    V = np.asarray(V, dtype=np.float64)
    if V.shape != (2, 2, 3):
        raise ValueError("corner velocities must have shape (2, 2, 3).")
    vtl, vtr, vbl, vbr = V[0, 0], V[0, 1], V[1, 0], V[1, 1]
    rtl, rtr, rbl, rbr = panel.rtl, panel.rtr, panel.rbl, panel.rbr

    edges = (rtr - rtl, rbl - rbr, rtl - rbl, rbr - rtr)
    moved = (
        edges[0] + (vtr - vtl) * dt,
        edges[1] + (vbl - vbr) * dt,
        edges[2] + (vtl - vbl) * dt,
        edges[3] + (vbr - vtr) * dt,
    )
    l1 = sum(float(np.linalg.norm(e)) for e in edges)
    l2 = sum(float(np.linalg.norm(e)) for e in moved)
    gamma = panel.gamma * (l2 / l1) if l1 > 0.0 else panel.gamma

    return WakePanel(rtl + vtl * dt, rtr + vtr * dt, rbl + vbl * dt, rbr + vbr * dt, panel.core_size, gamma)


def translate_wake_inplace(wake: WakeGrid, V: np.ndarray, dt: float, *, nwake: int | None = None) -> WakeGrid:
    """Translate the first ``nwake`` rows of ``wake`` with corner velocities ``V``."""
    _check_buffer(V, wake)
    n = wake._check_nwake(nwake)
    for i in range(n):
        for j in range(wake.nspan):
            wake[i, j] = translate_wake_panel(wake[i, j], V[i:i + 2, j:j + 2], dt)
    return wake


def translate_wake(wake: WakeGrid, V: np.ndarray, dt: float, *, nwake: int | None = None) -> WakeGrid:
    """Translated copy of ``wake``; the input is left untouched."""
    return translate_wake_inplace(wake.copy(), V, dt, nwake=nwake)


def shed_wake(
    wake: WakeGrid,
    V: np.ndarray,
    dt: float,
    gamma_te: np.ndarray | Sequence[float],
    *,
    trailing_edge: np.ndarray | Sequence | None = None,
) -> WakeGrid:
    """Shed a new row of panels from the trailing edge into ``wake``.

    V: trailing-edge corner velocities (ns+1, 3) from the current sampling pass
    gamma_te: trailing-edge circulation (ns,) of the bound surface
    trailing_edge: trailing-edge corners (ns+1, 3); defaults to the top
        corners of the most recently shed row

    The new row overwrites the oldest one and becomes logical row 0.
    """
    ns = wake.nspan
    V = np.asarray(V, dtype=np.float64)
    if V.shape != (ns + 1, 3):
        raise ValueError(f"trailing-edge velocities must have shape {(ns + 1, 3)}.")
    gamma = np.asarray(gamma_te, dtype=np.float64)
    if gamma.shape != (ns,):
        raise ValueError(f"gamma_te must have shape {(ns,)}.")

    if trailing_edge is None:
        te = [wake[0, j].rtl for j in range(ns)] + [wake[0, ns - 1].rtr]
    else:
        te = np.asarray(trailing_edge, dtype=np.float64)
        if te.shape != (ns + 1, 3):
            raise ValueError(f"trailing_edge must have shape {(ns + 1, 3)}.")

    row = []
    for j in range(ns):
        rtl, rtr = te[j], te[j + 1]
        # core size carries over from the previously shed panel
        core_size = wake[0, j].core_size
        row.append(WakePanel(rtl, rtr, rtl + V[j] * dt, rtr + V[j + 1] * dt, core_size, gamma[j]))

    wake.push_row(row)
    logger.debug("Shed wake row; %d of %d rows filled.", wake.nwake, wake.capacity)
    return wake
