from __future__ import annotations

import logging

import numpy as np

from uvlm3d import (
    Freestream, NumbaConfig, NumericsConfig, Reference, SimulationConfig, WakeConfig, WakeSystem,
    panels_from_corners, plot_wake, setup_logging, with_circulation,
)


def main() -> None:
    setup_logging(logging.INFO)

    chord, semispan = 1.0, 4.0
    nc, ns = 4, 12
    X, Y = np.meshgrid(np.linspace(0.0, chord, nc + 1), np.linspace(0.0, semispan, ns + 1), indexing="ij")
    # bound vortices on the quarter chord of each chordwise panel
    X = X + 0.25 * chord / nc
    wing = panels_from_corners(np.stack([X, Y, np.zeros_like(X)], axis=-1))

    fs = Freestream(vinf=10.0, alpha=np.deg2rad(5.0))
    ref = Reference()
    sim = WakeSystem(
        [wing], freestream=fs, reference=ref,
        wake=WakeConfig(capacity=30, symmetric=True),
        numerics=NumericsConfig(numba=NumbaConfig(enabled=True)),
    )
    cfg = SimulationConfig(dt=chord / nc / fs.vinf, steps=30)

    aic = sim.influence_coefficients(0)
    panels = sim.surfaces[0].ravel()
    cps = np.array([p.control_point for p in panels])
    nrm = np.array([p.normal for p in panels])
    for _ in range(cfg.steps):
        v = np.array([fs.velocity(c, ref) for c in cps]) + sim.induced_velocities(cps, surfaces=False)
        gamma = np.linalg.solve(aic, -np.einsum("ij,ij->i", v, nrm))
        sim.set_surfaces([with_circulation(sim.surfaces[0], gamma.reshape(nc, ns))])
        sim.step(cfg.dt)

    d = sim.diagnostics()
    print(f"t={d['time']:.3f} s, wake rows={d['wake_rows']}, max corner speed={d['max_corner_speed']:.2f} m/s")
    plot_wake(sim.surfaces, sim.wakes, symmetric=True)

if __name__ == "__main__":
    main()
