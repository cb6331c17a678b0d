from __future__ import annotations

import argparse
import time
import tracemalloc
import numpy as np
from uvlm3d import (
    Freestream, NumbaConfig, NumericsConfig, SimulationConfig, WakeConfig, WakeSystem, panels_from_corners,
)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--nc", type=int, default=4)
    ap.add_argument("--ns", type=int, default=12)
    ap.add_argument("--capacity", type=int, default=10)
    ap.add_argument("--numba", action="store_true")
    ap.add_argument("--symmetric", action="store_true")
    args = ap.parse_args()

    X, Y = np.meshgrid(np.linspace(0.0, 1.0, args.nc + 1), np.linspace(0.0, 6.0, args.ns + 1), indexing="ij")
    wing = panels_from_corners(np.stack([X, Y, np.zeros_like(X)], axis=-1), np.ones((args.nc, args.ns)))

    sim = WakeSystem([wing], freestream=Freestream(alpha=0.05),
                     wake=WakeConfig(capacity=args.capacity, trailing_vortices=True, symmetric=args.symmetric),
                     numerics=NumericsConfig(numba=NumbaConfig(enabled=bool(args.numba))))
    sim.run(SimulationConfig(dt=0.05, steps=args.capacity))

    tracemalloc.start()
    t0 = time.perf_counter()
    _ = sim.velocities()
    elapsed = time.perf_counter() - t0
    current, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    print(f"velocities(nc={args.nc}, ns={args.ns}, rows={args.capacity}) time={elapsed:.3f} s peak={peak/1e6:.1f} MB")

    tracemalloc.start()
    _ = sim.influence_coefficients(0)
    current, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    print(f"influence_coefficients(n={args.nc * args.ns}, numba={args.numba}) peak={peak/1e6:.1f} MB")

if __name__ == "__main__":
    main()
