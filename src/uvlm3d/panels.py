from __future__ import annotations

from dataclasses import dataclass, replace
from typing import NamedTuple, Union
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from .filament import filament_velocity

FloatArray = NDArray[np.float64]
ArrayLike3 = np.ndarray | Sequence[float]

# distance standing in for infinity along trailing vortices
TRAILING_LENGTH: float = 1e9
XHAT: tuple[float, float, float] = (1.0, 0.0, 0.0)

# row order of the per-edge contributions returned by panel_induced_velocity
TOP, BOTTOM, LEFT, RIGHT, LEFT_TRAILING, RIGHT_TRAILING = range(6)

def _as_point(x: ArrayLike3, name: str) -> FloatArray:
    """Private read-only float64 copy of a 3-vector."""
    arr = np.array(x, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,).")
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} contains non-finite values.")
    arr.flags.writeable = False
    return arr


def _check_corners(panel: Panel) -> None:
    for name in ("rtl", "rtr", "rbl", "rbr"):
        object.__setattr__(panel, name, _as_point(getattr(panel, name), name))
    object.__setattr__(panel, "core_size", float(panel.core_size))
    object.__setattr__(panel, "gamma", float(panel.gamma))


# ---------------------------
# Panel variants
# ---------------------------
@dataclass(frozen=True, slots=True, eq=False)
class SurfacePanel:
    """Bound vortex ring on a lifting surface.

    rtl, rtr: left/right ends of the top bound vortex
    rbl, rbr: left/right ends of the bottom bound vortex
    core_size: finite core size
    gamma: circulation strength
    """
    rtl: FloatArray
    rtr: FloatArray
    rbl: FloatArray
    rbr: FloatArray
    core_size: float = 0.0
    gamma: float = 0.0

    def __post_init__(self) -> None:
        _check_corners(self)

    @property
    def control_point(self) -> FloatArray:
        return 0.25 * (self.rtl + self.rtr + self.rbl + self.rbr)

    @property
    def normal(self) -> FloatArray:
        n = np.cross(self.rtr - self.rbl, self.rtl - self.rbr)
        return n / np.linalg.norm(n)


@dataclass(frozen=True, slots=True, eq=False)
class WakePanel:
    """Shed vortex ring; same layout as :class:`SurfacePanel`."""
    rtl: FloatArray
    rtr: FloatArray
    rbl: FloatArray
    rbr: FloatArray
    core_size: float = 0.0
    gamma: float = 0.0

    def __post_init__(self) -> None:
        _check_corners(self)


Panel = Union[SurfacePanel, WakePanel]


class EdgeMask(NamedTuple):
    """Which of the six filaments of a panel contribute to an evaluation."""
    top: bool = True
    bottom: bool = True
    left: bool = True
    right: bool = True
    left_trailing: bool = True
    right_trailing: bool = True

    @classmethod
    def full(cls) -> EdgeMask:
        return cls()


# ---------------------------
# Accessors
# ---------------------------
def top_left(panel: Panel) -> FloatArray: return panel.rtl

def top_right(panel: Panel) -> FloatArray: return panel.rtr

def bottom_left(panel: Panel) -> FloatArray: return panel.rbl

def bottom_right(panel: Panel) -> FloatArray: return panel.rbr

def get_core_size(panel: Panel) -> float: return panel.core_size

def circulation_strength(panel: Panel) -> float: return panel.gamma


def flip_y(r: ArrayLike3) -> FloatArray:
    """Mirror a point (or direction) across the y = 0 plane."""
    x, y, z = r
    return np.array((x, -y, z), dtype=np.float64)


def translate(panel: Panel, offset: ArrayLike3) -> Panel:
    """Rigidly move all four corners by ``offset``."""
    r = _as_point(offset, "offset")
    return replace(panel, rtl=panel.rtl + r, rtr=panel.rtr + r, rbl=panel.rbl + r, rbr=panel.rbr + r)


def reflect(panel: Panel) -> Panel:
    """Mirror image across y = 0, with left and right swapped to keep the ring orientation."""
    return replace(
        panel,
        rtl=flip_y(panel.rtr),
        rtr=flip_y(panel.rtl),
        rbl=flip_y(panel.rbr),
        rbr=flip_y(panel.rbl),
    )


# ---------------------------
# Induced velocity
# ---------------------------
def panel_filaments(
    panel: Panel,
    trailing: bool,
    *,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
) -> tuple[FloatArray, FloatArray]:
    """Start and end points (6,3) of the six filaments of ``panel``.

    Rows follow TOP, BOTTOM, LEFT, RIGHT, LEFT_TRAILING, RIGHT_TRAILING. With
    ``trailing`` the bottom edge is carried to infinity by the two trailing
    vortices and collapses to a point; without it the trailing vortices do.
    """
    rtl, rtr, rbl, rbr = panel.rtl, panel.rtr, panel.rbl, panel.rbr
    start = np.empty((6, 3), dtype=np.float64)
    end = np.empty((6, 3), dtype=np.float64)
    start[TOP], end[TOP] = rtl, rtr
    start[LEFT], end[LEFT] = rbl, rtl
    start[RIGHT], end[RIGHT] = rtr, rbr
    if trailing:
        ext = trailing_length * np.asarray(xhat, dtype=np.float64)
        start[BOTTOM], end[BOTTOM] = rbl, rbl
        start[LEFT_TRAILING], end[LEFT_TRAILING] = rbl + ext, rbl
        start[RIGHT_TRAILING], end[RIGHT_TRAILING] = rbr, rbr + ext
    else:
        start[BOTTOM], end[BOTTOM] = rbr, rbl
        start[LEFT_TRAILING], end[LEFT_TRAILING] = rbl, rbl
        start[RIGHT_TRAILING], end[RIGHT_TRAILING] = rbr, rbr
    return start, end


def mirror_filaments(start: np.ndarray, end: np.ndarray) -> tuple[FloatArray, FloatArray]:
    """Images of filaments ``start -> end`` across y = 0.

    Each image runs backwards so that row k stays the image of filament k
    with the circulation sense of a mirrored ring.
    """
    flip = np.array((1.0, -1.0, 1.0), dtype=np.float64)
    return np.asarray(end, dtype=np.float64) * flip, np.asarray(start, dtype=np.float64) * flip


def panel_induced_velocity(
    rcp: ArrayLike3,
    panel: Panel,
    trailing: bool,
    *,
    finite_core: bool = False,
    reflect: bool = False,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    mask: EdgeMask = EdgeMask(),
) -> FloatArray:
    """Per-filament unit-circulation velocities (6,3) induced at ``rcp``.

    Rows are zero where ``mask`` excludes the filament or the filament does
    not exist; ``EdgeMask.full()`` keeps all six. ``reflect`` evaluates the
    mirror image of ``panel`` (shedding along the mirrored ``xhat``) at the
    unreflected point; rows and ``mask`` still refer to the edges of
    ``panel``, so row LEFT holds the image of its left edge.
    """
    core_size = panel.core_size if finite_core else 0.0
    start, end = panel_filaments(panel, trailing, xhat=xhat, trailing_length=trailing_length)
    if reflect:
        start, end = mirror_filaments(start, end)

    out = np.zeros((6, 3), dtype=np.float64)
    for k, include in enumerate(mask):
        if not include:
            continue
        if k == BOTTOM and trailing:
            continue
        if k in (LEFT_TRAILING, RIGHT_TRAILING) and not trailing:
            continue
        out[k] = filament_velocity(start[k], end[k], rcp, core_size)
    return out


# ---------------------------
# Grids of panels
# ---------------------------
def panels_from_corners(
    corners: np.ndarray | Sequence,
    gamma: np.ndarray | Sequence | None = None,
    core_size: float = 0.0,
    kind: type = SurfacePanel,
) -> np.ndarray:
    """Build an (nc, ns) object array of panels from an (nc+1, ns+1, 3) corner mesh.

    Row 0 is the leading (top) row; adjacent panels share bit-identical corners.
    """
    xyz = np.asarray(corners, dtype=np.float64)
    if xyz.ndim != 3 or xyz.shape[2] != 3 or xyz.shape[0] < 2 or xyz.shape[1] < 2:
        raise ValueError("corners must have shape (nc+1, ns+1, 3).")
    nc, ns = xyz.shape[0] - 1, xyz.shape[1] - 1
    if gamma is None:
        g = np.zeros((nc, ns), dtype=np.float64)
    else:
        g = np.asarray(gamma, dtype=np.float64)
        if g.shape != (nc, ns):
            raise ValueError(f"gamma must have shape {(nc, ns)}.")
    grid = np.empty((nc, ns), dtype=object)
    for i in range(nc):
        for j in range(ns):
            grid[i, j] = kind(xyz[i, j], xyz[i, j + 1], xyz[i + 1, j], xyz[i + 1, j + 1], core_size, g[i, j])
    return grid


def circulation(panels: np.ndarray) -> FloatArray:
    """Circulation strengths of a 2D panel grid."""
    grid = np.asarray(panels, dtype=object)
    out = np.empty(grid.shape, dtype=np.float64)
    for idx, p in np.ndenumerate(grid):
        out[idx] = p.gamma
    return out


def with_circulation(panels: np.ndarray, gamma: np.ndarray | Sequence) -> np.ndarray:
    """Copy of ``panels`` carrying new circulation strengths."""
    grid = np.asarray(panels, dtype=object)
    g = np.asarray(gamma, dtype=np.float64)
    if g.shape != grid.shape:
        raise ValueError(f"gamma must have shape {grid.shape}.")
    out = np.empty(grid.shape, dtype=object)
    for idx, p in np.ndenumerate(grid):
        out[idx] = replace(p, gamma=g[idx])
    return out


def trailing_edge_corners(panels: np.ndarray) -> FloatArray:
    """Bottom corners (ns+1, 3) of the last chordwise row of a surface."""
    grid = np.asarray(panels, dtype=object)
    if grid.ndim != 2:
        raise ValueError("panels must be a 2D grid.")
    last = grid[-1]
    te = [p.rbl for p in last] + [last[-1].rbr]
    return np.array(te, dtype=np.float64)
