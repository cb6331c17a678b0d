from __future__ import annotations

import numpy as np
import pytest

from uvlm3d import (
    Freestream, NumbaConfig, NumericsConfig, SimulationConfig, WakeConfig, WakeSystem,
    influence_coefficients, panels_from_corners,
)


@pytest.mark.benchmark(group="influence-coefficients")
@pytest.mark.parametrize("ns", [8, 16, 32])
@pytest.mark.parametrize("use_numba", [False, True])
def test_influence_matrix_benchmark(benchmark, ns: int, use_numba: bool) -> None:
    nc = 4
    X, Y = np.meshgrid(np.linspace(0.0, 1.0, nc + 1), np.linspace(0.0, 8.0, ns + 1), indexing="ij")
    grid = panels_from_corners(np.stack([X, Y, 0.02 * Y * Y], axis=-1))
    cps = np.array([p.control_point for p in grid.ravel()])
    nrm = np.array([p.normal for p in grid.ravel()])

    def run() -> None:
        aic = influence_coefficients(cps, nrm, grid, symmetric=True, jit=use_numba)
        assert aic.shape == (nc * ns, nc * ns)
    benchmark(run)


@pytest.mark.benchmark(group="wake-sampling")
@pytest.mark.parametrize("nwake", [5, 20])
@pytest.mark.parametrize("use_numba", [False, True])
def test_wake_sampling_benchmark(benchmark, nwake: int, use_numba: bool) -> None:
    nc, ns = 4, 12
    X, Y = np.meshgrid(np.linspace(0.0, 1.0, nc + 1), np.linspace(0.0, 4.0, ns + 1), indexing="ij")
    wing = panels_from_corners(np.stack([X, Y, np.zeros_like(X)], axis=-1), np.ones((nc, ns)))
    sim = WakeSystem(
        [wing],
        freestream=Freestream(alpha=0.05),
        wake=WakeConfig(capacity=nwake, symmetric=True),
        numerics=NumericsConfig(numba=NumbaConfig(enabled=use_numba)),
    )
    sim.run(SimulationConfig(dt=0.05, steps=nwake))

    def run() -> None:
        V = sim.velocities()
        assert V[0].shape == (nwake + 1, ns + 1, 3)
    benchmark(run)
