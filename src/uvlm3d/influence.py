from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .filament import as_points, filament_velocities
from .panels import (
    BOTTOM,
    LEFT,
    LEFT_TRAILING,
    RIGHT,
    RIGHT_TRAILING,
    TOP,
    TRAILING_LENGTH,
    XHAT,
    ArrayLike3,
    EdgeMask,
    mirror_filaments,
    panel_filaments,
)

FloatArray = NDArray[np.float64]
IntArray = NDArray[np.int64]

# corner offsets (row, column) of the start and end of each filament; None lies off the grid
_ENDS = {
    TOP: ((0, 0), (0, 1)),
    BOTTOM: ((1, 1), (1, 0)),
    LEFT: ((1, 0), (0, 0)),
    RIGHT: ((0, 1), (1, 1)),
    LEFT_TRAILING: (None, (1, 0)),
    RIGHT_TRAILING: ((1, 1), None),
}


def as_grid(panels: np.ndarray | Sequence, name: str = "panels") -> np.ndarray:
    """View a panel collection as a 2D object array (chordwise, spanwise)."""
    grid = np.asarray(panels, dtype=object)
    if grid.ndim != 2:
        raise ValueError(f"{name} must be a 2D grid of panels.")
    return grid


def _check_nrows(nrows: int | None, nc: int) -> int:
    if nrows is None:
        return nc
    if not 0 <= nrows <= nc:
        raise ValueError(f"nrows must be in [0, {nc}].")
    return int(nrows)


# ---------------------------
# Edge bookkeeping
# ---------------------------
def edge_mask(
    i: int,
    j: int,
    nrows: int,
    ncols: int,
    *,
    index: tuple[int, int] | None = None,
    same_surface: bool = False,
    trailing_vortices: bool = False,
    finite_core: bool = True,
) -> EdgeMask:
    """Filaments of panel (i, j) that contribute when sweeping an (nrows, ncols) grid.

    ``index`` is the corner (row, column) of the grid where the field point
    sits when ``same_surface`` is set; filaments ending at that corner are
    dropped. Without a finite core, top edges are only evaluated on row 0 and
    left edges/left trailing vortices only on column 0: every other shared
    filament is evaluated once by the panel above or to the left of it.
    """
    trailing = trailing_vortices and i == nrows - 1

    top = True
    bottom = not trailing
    left = True
    right = True
    left_trailing = trailing
    right_trailing = trailing

    if same_surface and index is not None:
        I, J = index
        at_tl = I == i and J == j
        at_tr = I == i and J == j + 1
        at_bl = I == i + 1 and J == j
        at_br = I == i + 1 and J == j + 1
        top = top and not (at_tl or at_tr)
        bottom = bottom and not (at_bl or at_br)
        left = left and not (at_tl or at_bl)
        right = right and not (at_tr or at_br)
        left_trailing = left_trailing and not at_bl
        right_trailing = right_trailing and not at_br

    if not finite_core:
        top = top and i == 0
        left = left and j == 0
        left_trailing = left_trailing and j == 0

    return EdgeMask(top, bottom, left, right, left_trailing, right_trailing)



# ---------------------------
# Filament sets
# ---------------------------
@dataclass(frozen=True, slots=True, eq=False)
class FilamentSet:
    """Filaments of a panel grid with the circulation each one carries.

    start, end: (n,3) filament end points
    weight: (n,) circulation of each filament
    core: (n,) core size of each filament
    ends: (n,2) corner ids of the start and end on the (nrows+1, ncols+1)
        corner grid, -1 for the far end of a trailing vortex
    """
    start: FloatArray
    end: FloatArray
    weight: FloatArray
    core: FloatArray
    ends: IntArray
    nrows: int
    ncols: int

    def __len__(self) -> int:
        return int(self.weight.shape[0])

    def corner_id(self, index: tuple[int, int]) -> int:
        """Flat id of corner (row, column), as stored in ``ends``."""
        i, j = index
        if not (0 <= i <= self.nrows and 0 <= j <= self.ncols):
            raise ValueError(f"corner {index} lies outside the {(self.nrows + 1, self.ncols + 1)} corner grid.")
        return i * (self.ncols + 1) + j


def grid_filaments(
    panels: np.ndarray | Sequence,
    *,
    nrows: int | None = None,
    trailing_vortices: bool = False,
    finite_core: bool = False,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
) -> FilamentSet:
    """Collect the filaments of the first ``nrows`` rows of a panel grid.

    With a finite core every panel contributes its own ring at its own
    circulation and core size. Without one each shared filament appears once:
    bottom edges carry ``gamma[i, j] - gamma[i+1, j]``, right edges and right
    trailing vortices ``gamma[i, j] - gamma[i, j+1]``.
    """
    grid = as_grid(panels)
    nc, ns = grid.shape
    nrows = _check_nrows(nrows, nc)

    starts: list[FloatArray] = []
    ends: list[FloatArray] = []
    weights: list[float] = []
    cores: list[float] = []
    ids: list[tuple[int, int]] = []
    for i in range(nrows):
        trailing = trailing_vortices and i == nrows - 1
        for j in range(ns):
            panel = grid[i, j]
            mask = edge_mask(i, j, nrows, ns, trailing_vortices=trailing_vortices, finite_core=finite_core)
            a, b = panel_filaments(panel, trailing, xhat=xhat, trailing_length=trailing_length)
            for k, include in enumerate(mask):
                if not include:
                    continue
                w = panel.gamma
                if not finite_core:
                    if k == BOTTOM and i < nrows - 1:
                        w -= grid[i + 1, j].gamma
                    elif k in (RIGHT, RIGHT_TRAILING) and j < ns - 1:
                        w -= grid[i, j + 1].gamma
                starts.append(a[k])
                ends.append(b[k])
                weights.append(w)
                cores.append(panel.core_size if finite_core else 0.0)
                ids.append(tuple(
                    -1 if off is None else (i + off[0]) * (ns + 1) + j + off[1] for off in _ENDS[k]
                ))

    if not weights:
        empty = np.zeros((0, 3), dtype=np.float64)
        return FilamentSet(empty, empty.copy(), np.zeros(0), np.zeros(0), np.zeros((0, 2), dtype=np.int64), nrows, ns)
    return FilamentSet(
        np.array(starts, dtype=np.float64),
        np.array(ends, dtype=np.float64),
        np.array(weights, dtype=np.float64),
        np.array(cores, dtype=np.float64),
        np.array(ids, dtype=np.int64),
        nrows,
        ns,
    )


def filament_set_velocities(
    points: np.ndarray | Sequence[Sequence[float]],
    filaments: FilamentSet,
    *,
    symmetric: bool = False,
    corners: np.ndarray | Sequence[int] | None = None,
    jit: bool = False,
) -> FloatArray:
    """Velocities (m,3) induced at ``points`` by every filament of a set.

    symmetric: add the image of every filament across y = 0
    corners: corner id of each point on the set's corner grid, or -1; a
        filament ending at a point's corner is left out for that point, its
        image is not
    jit: evaluate with the compiled kernel
    """
    pts = as_points(points, "points")
    if len(filaments) == 0 or pts.shape[0] == 0:
        return np.zeros_like(pts)

    vel = filament_velocities(filaments.start, filaments.end, pts, filaments.core, jit=jit)  # (m, n, 3)
    if corners is not None:
        cid = np.asarray(corners, dtype=np.int64)
        if cid.shape != (pts.shape[0],):
            raise ValueError("corners must hold one id per point.")
        own = (filaments.ends[None, :, 0] == cid[:, None]) | (filaments.ends[None, :, 1] == cid[:, None])
        vel[own & (cid[:, None] >= 0)] = 0.0
    if symmetric:
        a, b = mirror_filaments(filaments.start, filaments.end)
        # filament and image are summed first so in-plane points get no y velocity
        vel += filament_velocities(a, b, pts, filaments.core, jit=jit)
    return np.einsum("mnk,n->mk", vel, filaments.weight)


# ---------------------------
# Induced velocity from a grid
# ---------------------------
def grid_induced_velocity(
    rcp: ArrayLike3,
    panels: np.ndarray | Sequence,
    symmetric: bool,
    same_surface: bool,
    same_id: bool,
    trailing_vortices: bool,
    *,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    nrows: int | None = None,
    index: tuple[int, int] | None = None,
    finite_core: bool | None = None,
    jit: bool = False,
) -> FloatArray:
    """Induced velocity at ``rcp`` from the first ``nrows`` rows of a panel grid.

    symmetric: add the mirror image of every panel across y = 0; ``xhat``
        must then lie in the symmetry plane
    same_surface: ``rcp`` is the grid corner ``index`` of this very grid
    same_id: ``rcp`` lies on a surface sharing this grid's ID; disables the
        finite core unless ``finite_core`` is given explicitly
    trailing_vortices: shed trailing vortices from the last evaluated row

    Without a finite core each shared filament is evaluated once and weighted
    by the circulation difference of its two panels; with it every panel is
    evaluated on its own with its own core size.
    """
    if finite_core is None:
        finite_core = not same_id
    filaments = grid_filaments(
        panels, nrows=nrows, trailing_vortices=trailing_vortices, finite_core=finite_core,
        xhat=xhat, trailing_length=trailing_length,
    )
    corners = None
    if same_surface and index is not None:
        corners = [filaments.corner_id(index)]
    rcp = np.asarray(rcp, dtype=np.float64)
    return filament_set_velocities(rcp[None, :], filaments, symmetric=symmetric, corners=corners, jit=jit)[0]


def surface_induced_velocity(
    rcp: ArrayLike3,
    surface: np.ndarray | Sequence,
    symmetric: bool,
    same_surface: bool,
    same_id: bool,
    trailing_vortices: bool,
    *,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    index: tuple[int, int] | None = None,
) -> FloatArray:
    """Induced velocity at ``rcp`` from the bound panels of ``surface``."""
    return grid_induced_velocity(
        rcp, surface, symmetric, same_surface, same_id, trailing_vortices,
        xhat=xhat, trailing_length=trailing_length, index=index,
    )


def induced_velocities(
    points: np.ndarray | Sequence[Sequence[float]],
    panels: np.ndarray | Sequence,
    *,
    symmetric: bool = False,
    same_id: bool = False,
    trailing_vortices: bool = False,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    nrows: int | None = None,
    finite_core: bool | None = None,
    jit: bool = False,
) -> FloatArray:
    """Batched :func:`grid_induced_velocity` over (m,3) points off the grid."""
    pts = as_points(points, "points")
    if finite_core is None:
        finite_core = not same_id
    filaments = grid_filaments(
        panels, nrows=nrows, trailing_vortices=trailing_vortices, finite_core=finite_core,
        xhat=xhat, trailing_length=trailing_length,
    )
    return filament_set_velocities(pts, filaments, symmetric=symmetric, jit=jit)


# ---------------------------
# Influence coefficients
# ---------------------------
def influence_coefficients(
    points: np.ndarray | Sequence[Sequence[float]],
    normals: np.ndarray | Sequence[Sequence[float]],
    panels: np.ndarray | Sequence,
    *,
    symmetric: bool = False,
    trailing_vortices: bool = True,
    xhat: ArrayLike3 = XHAT,
    trailing_length: float = TRAILING_LENGTH,
    finite_core: bool = False,
    jit: bool = False,
) -> FloatArray:
    """Normal-velocity influence matrix ``Vn = AIC @ gamma``.

    Entry (i, k) is the velocity along ``normals[i]`` induced at ``points[i]``
    by panel k (row-major over the grid) at unit circulation: its full ring,
    its trailing vortices when it sits on the last row and ``trailing_vortices``
    is set, and its mirror image when ``symmetric``.
    """
    pts = as_points(points, "points")
    nrm = as_points(normals, "normals")
    if pts.shape != nrm.shape:
        raise ValueError("points and normals must have the same shape.")
    grid = as_grid(panels)
    nc, _ = grid.shape
    if grid.size == 0:
        return np.zeros((pts.shape[0], 0), dtype=np.float64)

    starts: list[FloatArray] = []
    ends: list[FloatArray] = []
    cores: list[float] = []
    owners: list[int] = []
    for k, ((i, _j), panel) in enumerate(np.ndenumerate(grid)):
        trailing = trailing_vortices and i == nc - 1
        a, b = panel_filaments(panel, trailing, xhat=xhat, trailing_length=trailing_length)
        rings = [(a, b)]
        if symmetric:
            rings.append(mirror_filaments(a, b))
        for start, end in rings:
            starts.append(start)
            ends.append(end)
            cores.extend([panel.core_size if finite_core else 0.0] * start.shape[0])
            owners.extend([k] * start.shape[0])

    vel = filament_velocities(
        np.concatenate(starts), np.concatenate(ends), pts, np.asarray(cores), jit=jit,
    )                                                         # (m, nfil, 3)
    vn = np.einsum("mfk,mk->mf", vel, nrm)
    owner = np.asarray(owners)
    onehot = np.zeros((owner.size, grid.size), dtype=np.float64)
    onehot[np.arange(owner.size), owner] = 1.0
    return np.asarray(vn @ onehot, dtype=np.float64)
