from __future__ import annotations

import math
import os
from typing import Final

import numpy as np
import matplotlib.pyplot as plt

from uvlm3d import SurfacePanel, filament_velocities, panel_induced_velocity


ART = os.environ.get("ARTIFACTS_DIR", "artifacts")
os.makedirs(ART, exist_ok=True)


def square_ring_axis_plot() -> None:
    Gamma: Final = 1.0
    a: Final = 0.5
    ring = SurfacePanel((-a, -a, 0.0), (-a, a, 0.0), (a, -a, 0.0), (a, a, 0.0), 0.0, Gamma)

    zs = np.linspace(0.05, 3.0, 60)
    w_num = np.array([panel_induced_velocity((0.0, 0.0, z), ring, False).sum(axis=0)[2] * Gamma for z in zs])
    # top -> right -> bottom -> left is clockwise seen from +z
    w_ref = -2.0 * Gamma * a * a / (math.pi * (a * a + zs * zs) * np.sqrt(2.0 * a * a + zs * zs))
    err = np.abs(w_num - w_ref) / np.abs(w_ref)

    fig, (ax0, ax1) = plt.subplots(1, 2, figsize=(10.0, 4.0))
    ax0.plot(zs, w_num, label="filament sum")
    ax0.plot(zs, w_ref, "--", label="closed form")
    ax0.set_xlabel("z [m]")
    ax0.set_ylabel("w [m/s]")
    ax0.set_title("Square ring: axial velocity")
    ax0.legend()
    ax0.grid(True, alpha=0.3)
    ax1.semilogy(zs, np.maximum(err, 1e-17), marker=".")
    ax1.set_xlabel("z [m]")
    ax1.set_ylabel("relative error")
    ax1.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(os.path.join(ART, "square_ring_axis.png"), dpi=150)


def finite_core_profile_plot() -> None:
    a = np.array([[0.0, -50.0, 0.0]])
    b = np.array([[0.0, 50.0, 0.0]])
    xs = np.linspace(1e-3, 0.5, 200)
    c = np.stack([xs, np.zeros_like(xs), np.zeros_like(xs)], axis=1)

    plt.figure()
    plt.plot(xs, 1.0 / (2.0 * np.pi * xs), "k--", label="line vortex 1/(2πr)")
    for core in (0.0, 0.02, 0.05, 0.1):
        v = filament_velocities(a, b, c, core)[:, 0, :]
        plt.plot(xs, np.linalg.norm(v, axis=1), label=f"core = {core:g}")
    plt.ylim(0.0, 12.0)
    plt.xlabel("distance r [m]")
    plt.ylabel("|v| [m/s]")
    plt.title("Filament velocity with finite core")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(os.path.join(ART, "finite_core_profile.png"), dpi=150)


if __name__ == "__main__":
    square_ring_axis_plot()
    finite_core_profile_plot()
