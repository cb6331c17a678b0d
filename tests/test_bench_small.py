from __future__ import annotations

import numpy as np

from uvlm3d import Freestream, SimulationConfig, WakeConfig, WakeSystem, panels_from_corners


def make_wing(nc: int, ns: int) -> np.ndarray:
    X, Y = np.meshgrid(np.linspace(0.0, 1.0, nc + 1), np.linspace(0.0, 4.0, ns + 1), indexing="ij")
    corners = np.stack([X, Y, np.zeros_like(X)], axis=-1)
    return panels_from_corners(corners, np.ones((nc, ns)))


def test_wake_sampling_benchmark(benchmark) -> None:
    sim = WakeSystem([make_wing(2, 6)], freestream=Freestream(alpha=0.05), wake=WakeConfig(capacity=6))
    sim.run(SimulationConfig(dt=0.1, steps=4))

    def run():
        sim.velocities()

    benchmark(run)
