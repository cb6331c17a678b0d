from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from uvlm3d import Freestream, SimulationConfig, WakeConfig, WakeSystem, panels_from_corners, plot_wake


def test_plot_wake_smoke() -> None:
    X, Y = np.meshgrid(np.linspace(0.0, 1.0, 3), np.linspace(0.0, 2.0, 4), indexing="ij")
    wing = panels_from_corners(np.stack([X, Y, np.zeros_like(X)], axis=-1), np.ones((2, 3)))
    sim = WakeSystem([wing], freestream=Freestream(), wake=WakeConfig(capacity=3, symmetric=True))
    sim.run(SimulationConfig(dt=0.1, steps=2))

    ax = plot_wake(sim.surfaces, sim.wakes, show=False, symmetric=True)
    # 6 bound panels + 6 wake panels, each drawn with its mirror image
    assert len(ax.lines) == 24
    assert ax.get_zlabel() == "z [m]"
    plt.close("all")


def test_plot_empty_wake_on_given_axes() -> None:
    X, Y = np.meshgrid(np.linspace(0.0, 1.0, 2), np.linspace(0.0, 1.0, 2), indexing="ij")
    wing = panels_from_corners(np.stack([X, Y, np.zeros_like(X)], axis=-1))
    sim = WakeSystem([wing], freestream=Freestream())
    fig = plt.figure()
    ax = fig.add_subplot(projection="3d")
    out = plot_wake(sim.surfaces, sim.wakes, ax=ax, show=False)
    assert out is ax
    assert len(ax.lines) == 1
    plt.close(fig)
