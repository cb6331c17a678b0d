from __future__ import annotations

from collections.abc import Sequence

import math
import numpy as np
from numba import njit
from numpy.typing import NDArray

FloatArray = NDArray[np.float64]
ArrayLike3 = np.ndarray | Sequence[float]

# length tolerance below which a field point is considered to sit on a filament
_EPS: float = 1e-12
_FOUR_PI: float = 4.0 * math.pi


# ---------------------------
# Single filament
# ---------------------------
def filament_velocity(a: ArrayLike3, b: ArrayLike3, c: ArrayLike3, core_size: float = 0.0) -> FloatArray:
    """Velocity induced at ``c`` by a unit-circulation straight filament ``a -> b``.

    Biot-Savart law for a finite segment with the finite-core regularisation
    ``|r1 x r2|^2 + core_size^2 |r0|^2`` in the denominator. Field points on
    the filament line (or at an endpoint) get exactly zero velocity.
    """
    ax, ay, az = a
    bx, by, bz = b
    cx, cy, cz = c

    x1 = cx - ax
    y1 = cy - ay
    z1 = cz - az
    x2 = cx - bx
    y2 = cy - by
    z2 = cz - bz
    x0 = bx - ax
    y0 = by - ay
    z0 = bz - az

    n1 = math.sqrt(x1 * x1 + y1 * y1 + z1 * z1)
    n2 = math.sqrt(x2 * x2 + y2 * y2 + z2 * z2)

    # r1 x r2
    u = y1 * z2 - z1 * y2
    v = z1 * x2 - x1 * z2
    w = x1 * y2 - y1 * x2
    cross2 = u * u + v * v + w * w

    if n1 <= _EPS or n2 <= _EPS or cross2 <= (_EPS * n1 * n2) ** 2:
        return np.zeros(3, dtype=np.float64)

    denom = cross2 + core_size * core_size * (x0 * x0 + y0 * y0 + z0 * z0)
    frac = (x0 * x1 + y0 * y1 + z0 * z1) / n1 - (x0 * x2 + y0 * y2 + z0 * z2) / n2
    coef = frac / (_FOUR_PI * denom)
    return np.array((coef * u, coef * v, coef * w), dtype=np.float64)


# ---------------------------
# Batched kernels
# ---------------------------
@njit(cache=True, nogil=True)
def _filament_velocities_jit(a: np.ndarray, b: np.ndarray, c: np.ndarray, core: np.ndarray, eps: float) -> np.ndarray:
    M = c.shape[0]
    N = a.shape[0]
    out = np.zeros((M, N, 3), dtype=np.float64)
    for i in range(M):
        cx = c[i, 0]
        cy = c[i, 1]
        cz = c[i, 2]
        for j in range(N):
            x1 = cx - a[j, 0]
            y1 = cy - a[j, 1]
            z1 = cz - a[j, 2]
            x2 = cx - b[j, 0]
            y2 = cy - b[j, 1]
            z2 = cz - b[j, 2]
            x0 = b[j, 0] - a[j, 0]
            y0 = b[j, 1] - a[j, 1]
            z0 = b[j, 2] - a[j, 2]
            n1 = math.sqrt(x1 * x1 + y1 * y1 + z1 * z1)
            n2 = math.sqrt(x2 * x2 + y2 * y2 + z2 * z2)
            u = y1 * z2 - z1 * y2
            v = z1 * x2 - x1 * z2
            w = x1 * y2 - y1 * x2
            cross2 = u * u + v * v + w * w
            if n1 <= eps or n2 <= eps or cross2 <= (eps * n1 * n2) ** 2:
                continue
            denom = cross2 + core[j] * core[j] * (x0 * x0 + y0 * y0 + z0 * z0)
            frac = (x0 * x1 + y0 * y1 + z0 * z1) / n1 - (x0 * x2 + y0 * y2 + z0 * z2) / n2
            coef = frac / (4.0 * math.pi * denom)
            out[i, j, 0] = coef * u
            out[i, j, 1] = coef * v
            out[i, j, 2] = coef * w
    return out


def as_points(x: np.ndarray | Sequence[Sequence[float]], name: str) -> FloatArray:
    """Convert to contiguous float64 (N,3)."""
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr[None, :]
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N,3).")
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} contains non-finite values.")
    return np.ascontiguousarray(arr)


def filament_velocities(
    a: np.ndarray | Sequence[Sequence[float]],
    b: np.ndarray | Sequence[Sequence[float]],
    c: np.ndarray | Sequence[Sequence[float]],
    core_size: float | np.ndarray | Sequence[float] = 0.0,
    *,
    jit: bool = False,
) -> FloatArray:
    """Unit-circulation velocities of ``n`` filaments ``a[k] -> b[k]`` at ``m`` points ``c``.

    Returns an array of shape (m, n, 3). ``core_size`` may be a scalar or one
    value per filament. With ``jit=True`` the compiled loop kernel is used.
    """
    a = as_points(a, "a")
    b = as_points(b, "b")
    c = as_points(c, "c")
    if a.shape != b.shape:
        raise ValueError("a and b must have the same shape.")
    core = np.broadcast_to(np.asarray(core_size, dtype=np.float64), (a.shape[0],))
    if not np.isfinite(core).all():
        raise ValueError("core_size contains non-finite values.")
    core = np.ascontiguousarray(core)

    if jit:
        return _filament_velocities_jit(a, b, c, core, _EPS)

    r1 = c[:, None, :] - a[None, :, :]                      # (m,n,3)
    r2 = c[:, None, :] - b[None, :, :]
    r0 = (b - a)[None, :, :]
    n1 = np.sqrt(np.sum(r1 * r1, axis=2))                    # (m,n)
    n2 = np.sqrt(np.sum(r2 * r2, axis=2))
    cross = np.cross(r1, r2)
    cross2 = np.sum(cross * cross, axis=2)

    ok = (n1 > _EPS) & (n2 > _EPS) & (cross2 > (_EPS * n1 * n2) ** 2)
    denom = cross2 + (core * core)[None, :] * np.sum(r0 * r0, axis=2)
    n1 = np.where(ok, n1, 1.0)
    n2 = np.where(ok, n2, 1.0)
    denom = np.where(ok, denom, 1.0)
    frac = np.sum(r0 * r1, axis=2) / n1 - np.sum(r0 * r2, axis=2) / n2
    coef = np.where(ok, frac / (_FOUR_PI * denom), 0.0)
    return np.asarray(coef[..., None] * cross, dtype=np.float64)
