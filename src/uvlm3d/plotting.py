from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import colors as mcolors

from .influence import as_grid
from .panels import reflect
from .wake import WakeGrid


def _loop(panel) -> np.ndarray:
    return np.array([panel.rtl, panel.rtr, panel.rbr, panel.rbl, panel.rtl], dtype=np.float64)


def plot_wake(
    surfaces: Sequence[np.ndarray],
    wakes: Sequence[WakeGrid],
    *,
    ax=None,
    show: bool = True,
    symmetric: bool = False,
    figsize: tuple[float, float] = (9.0, 6.0),
):
    """Draw bound panels (black) and filled wake rows coloured by circulation."""
    if ax is None:
        fig = plt.figure(figsize=figsize)
        ax = fig.add_subplot(projection="3d")

    wake_panels = [w[i, j] for w in wakes for i in range(w.nwake) for j in range(w.nspan)]
    g = np.array([p.gamma for p in wake_panels], dtype=np.float64)
    gmax = float(np.abs(g).max()) if g.size else 0.0
    norm = mcolors.Normalize(vmin=-gmax - 1e-15, vmax=gmax + 1e-15)
    cmap = plt.get_cmap("coolwarm")

    def draw(panel, color, lw):
        images = [panel, reflect(panel)] if symmetric else [panel]
        for p in images:
            xyz = _loop(p)
            ax.plot(xyz[:, 0], xyz[:, 1], xyz[:, 2], color=color, linewidth=lw)

    for s in surfaces:
        for p in as_grid(s, "surface").ravel():
            draw(p, "black", 0.8)
    for p, gp in zip(wake_panels, g):
        draw(p, cmap(norm(gp)), 0.6)

    if wake_panels:
        sm = plt.cm.ScalarMappable(norm=norm, cmap=cmap)
        sm.set_array(g)
        ax.figure.colorbar(sm, ax=ax, fraction=0.03, pad=0.08).set_label("Circulation [m²/s]")

    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_zlabel("z [m]")
    ax.set_title(f"Wake: {sum(w.nwake for w in wakes)} shed row(s)")
    if show:
        plt.show()
    return ax
