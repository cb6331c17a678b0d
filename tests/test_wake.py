from __future__ import annotations

import numpy as np
import pytest

from uvlm3d import (
    Freestream,
    Reference,
    WakeGrid,
    WakePanel,
    panels_from_corners,
    shed_wake,
    surface_induced_velocity,
    trailing_edge_corners,
    translate_wake,
    translate_wake_inplace,
    translate_wake_panel,
    wake_induced_velocity,
    wake_velocities,
)


def make_surface(nc: int = 2, ns: int = 3, gamma: float = 0.0) -> np.ndarray:
    x = np.linspace(0.0, 1.0, nc + 1)
    y = np.linspace(0.0, 3.0, ns + 1)
    X, Y = np.meshgrid(x, y, indexing="ij")
    corners = np.stack([X, Y, np.zeros_like(X)], axis=-1)
    return panels_from_corners(corners, np.full((nc, ns), gamma))


def make_wake(capacity: int = 4, ns: int = 3) -> tuple[WakeGrid, np.ndarray]:
    te = trailing_edge_corners(make_surface(ns=ns))
    return WakeGrid.from_trailing_edge(te, capacity), te


# ---------------------------
# Ring buffer
# ---------------------------
def test_empty_wake_sits_on_trailing_edge():
    wake, te = make_wake(capacity=5)
    assert wake.capacity == 5 and wake.nspan == 3 and wake.nwake == 0
    assert wake.shape == (5, 3)
    assert np.array_equal(wake.circulation(), np.zeros((5, 3)))
    assert np.array_equal(wake[4, 2].rbr, te[3])
    assert np.array_equal(wake.corners(), te[None])
    assert wake.velocity_buffer().shape == (6, 4, 3)


def test_push_row_rotates_logical_order():
    wake, te = make_wake(capacity=3)
    for k in range(1, 6):
        row = [WakePanel(te[j], te[j + 1], te[j], te[j + 1], 0.0, float(k)) for j in range(3)]
        wake.push_row(row)
        assert wake.nwake == min(k, 3)
    assert np.array_equal(wake.circulation()[:, 0], [5.0, 4.0, 3.0])
    assert [p.gamma for p in wake.panels[:, 1]] == [5.0, 4.0, 3.0]

    with pytest.raises(IndexError):
        wake[3, 0]
    with pytest.raises(IndexError):
        wake[-1, 0]
    with pytest.raises(ValueError):
        wake.push_row(row[:2])


def test_copy_is_independent():
    wake, te = make_wake(capacity=2)
    other = wake.copy()
    other[0, 0] = WakePanel(te[0], te[1], te[0], te[1], 0.0, 9.0)
    assert wake[0, 0].gamma == 0.0
    assert other[0, 0].gamma == 9.0


def test_constructor_validation():
    wake, _ = make_wake()
    with pytest.raises(ValueError):
        WakeGrid(wake.panels, nwake=10)
    with pytest.raises(ValueError):
        WakeGrid.from_trailing_edge(np.zeros((1, 3)), 3)
    with pytest.raises(ValueError):
        WakeGrid.from_trailing_edge(np.zeros((4, 3)), 0)


# ---------------------------
# Translation and stretching
# ---------------------------
def test_uniform_translation_keeps_circulation_exactly():
    rng = np.random.default_rng(0)
    c = rng.uniform(-1.0, 1.0, size=(4, 3))
    p = WakePanel(c[0], c[1], c[2], c[3], 0.02, 1.7)
    u = np.array([0.3, -1.1, 0.45])
    V = np.broadcast_to(u, (2, 2, 3))
    q = translate_wake_panel(p, V, 0.013)
    assert q.gamma == p.gamma
    assert q.core_size == p.core_size
    assert np.allclose(q.rtl, p.rtl + u * 0.013)


def test_stretching_scales_circulation_with_length():
    p = WakePanel((0, 0, 0), (0, 1, 0), (1, 0, 0), (1, 1, 0), 0.0, 2.0)
    V = np.zeros((2, 2, 3))
    V[0, 1] = V[1, 1] = (0.0, 1.0, 0.0)
    q = translate_wake_panel(p, V, 1.0)
    # spanwise edges double, chordwise edges keep their length: 4 -> 6
    assert np.isclose(q.gamma, 3.0)
    assert np.allclose(q.rbr, (1.0, 2.0, 0.0))


def test_degenerate_panel_keeps_circulation():
    p = WakePanel((1, 1, 1), (1, 1, 1), (1, 1, 1), (1, 1, 1), 0.0, 4.0)
    V = np.arange(12.0).reshape(2, 2, 3)
    assert translate_wake_panel(p, V, 0.1).gamma == 4.0
    with pytest.raises(ValueError):
        translate_wake_panel(p, np.zeros((2, 3)), 0.1)


def test_translate_wake_is_pure():
    wake, te = make_wake(capacity=3)
    V = wake.velocity_buffer()
    V[...] = (1.0, 0.0, 0.0)
    shed_wake(wake, V[0], 0.1, [1.0, 2.0, 3.0], trailing_edge=te)
    before = wake.corners()

    moved = translate_wake(wake, V, 0.1)
    assert np.array_equal(wake.corners(), before)
    assert np.allclose(moved.corners(), before + [0.1, 0.0, 0.0])
    assert moved.nwake == wake.nwake

    translate_wake_inplace(wake, V, 0.1)
    assert np.array_equal(wake.corners(), moved.corners())


def test_translate_rejects_bad_buffer():
    wake, _ = make_wake(capacity=3)
    with pytest.raises(ValueError):
        translate_wake_inplace(wake, np.zeros((3, 4, 3)), 0.1)


# ---------------------------
# Shedding
# ---------------------------
def test_shedding_keeps_rows_attached_bit_for_bit():
    wake, te = make_wake(capacity=4)
    rng = np.random.default_rng(1)
    dt = 0.05
    for step in range(3):
        V = wake.velocity_buffer()
        V[: wake.nwake + 1] = rng.uniform(-1.0, 1.0, size=(wake.nwake + 1, 4, 3))
        translate_wake_inplace(wake, V, dt)
        shed_wake(wake, V[0], dt, [1.0 + step, 2.0, 3.0], trailing_edge=te)

        for j in range(3):
            assert np.array_equal(wake[0, j].rtl, te[j])
            assert np.array_equal(wake[0, j].rtr, te[j + 1])
            if wake.nwake > 1:
                assert np.array_equal(wake[0, j].rbl, wake[1, j].rtl)
                assert np.array_equal(wake[0, j].rbr, wake[1, j].rtr)
    assert wake.nwake == 3
    # the newest row is not stretched yet
    assert np.array_equal(wake.circulation()[0], [3.0, 2.0, 3.0])

    corners = wake.corners()
    assert corners.shape == (4, 4, 3)
    assert np.array_equal(corners[0], te)
    assert np.array_equal(corners[3, 0], wake[2, 0].rbl)


def test_shed_defaults_to_previous_top_corners():
    wake, te = make_wake(capacity=2)
    V = np.tile([1.0, 0.0, 0.5], (4, 1))
    shed_wake(wake, V, 0.2, np.zeros(3))
    assert np.array_equal(wake[0, 1].rtl, te[1])
    assert np.allclose(wake[0, 1].rbl, te[1] + [0.2, 0.0, 0.1])


def test_shed_carries_core_size():
    te = trailing_edge_corners(make_surface())
    wake = WakeGrid.from_trailing_edge(te, 2, core_size=0.03)
    shed_wake(wake, np.zeros((4, 3)), 0.1, np.ones(3))
    assert all(wake[0, j].core_size == 0.03 for j in range(3))


def test_shed_rejects_bad_shapes():
    wake, te = make_wake()
    with pytest.raises(ValueError):
        shed_wake(wake, np.zeros((3, 3)), 0.1, np.zeros(3))
    with pytest.raises(ValueError):
        shed_wake(wake, np.zeros((4, 3)), 0.1, np.zeros(2))
    with pytest.raises(ValueError):
        shed_wake(wake, np.zeros((4, 3)), 0.1, np.zeros(3), trailing_edge=te[:3])


# ---------------------------
# Sampling
# ---------------------------
def test_zero_circulation_samples_freestream():
    surface = make_surface()
    wake, te = make_wake(capacity=3)
    fs = Freestream(vinf=2.0, alpha=0.1)
    V = wake.velocity_buffer()
    V[...] = fs.uniform()
    shed_wake(wake, V[0], 0.1, np.zeros(3), trailing_edge=te)

    out = wake_velocities(None, [surface], [wake], [0], True, False, Reference(), fs)
    assert len(out) == 1
    assert np.allclose(out[0][:2], fs.uniform())
    assert np.array_equal(out[0][2:], np.zeros((2, 4, 3)))


def test_sampling_does_not_move_the_wake():
    surface = make_surface(gamma=1.0)
    wake, te = make_wake(capacity=3)
    V = wake.velocity_buffer()
    V[...] = (1.0, 0.0, 0.0)
    for g in (1.0, 0.5):
        translate_wake_inplace(wake, V, 0.2)
        shed_wake(wake, V[0], 0.2, np.full(3, g), trailing_edge=te)
    before = wake.corners()

    buf = [wake.velocity_buffer()]
    out = wake_velocities(buf, [surface], [wake], [0], True, False, Reference(), Freestream())
    assert out is buf
    assert np.array_equal(wake.corners(), before)
    assert np.all(np.isfinite(out[0]))
    # bound and shed vorticity perturb the freestream
    assert not np.allclose(out[0][:3], Freestream().uniform())


def test_sampling_validates_inputs():
    surface = make_surface()
    wake, _ = make_wake()
    with pytest.raises(ValueError):
        wake_velocities(None, [surface], [wake], [0, 1], False, False, Reference(), Freestream())
    with pytest.raises(ValueError):
        wake_velocities([np.zeros((2, 2, 3))], [surface], [wake], [0], False, False, Reference(), Freestream())
    with pytest.raises(ValueError):
        wake_velocities(None, [make_surface(ns=2)], [wake], [0], False, False, Reference(), Freestream())


def test_wake_induced_velocity_uses_filled_rows_only():
    wake, te = make_wake(capacity=3)
    rcp = (0.5, 1.0, 0.5)
    assert np.array_equal(wake_induced_velocity(rcp, wake, False, False, False, True), np.zeros(3))
    V = wake.velocity_buffer()
    V[...] = (1.0, 0.0, 0.0)
    shed_wake(wake, V[0], 0.5, np.ones(3), trailing_edge=te)
    v = wake_induced_velocity(rcp, wake, False, False, False, True)
    assert np.linalg.norm(v) > 0.0
    assert np.array_equal(wake_induced_velocity(rcp, wake, False, False, False, True, nwake=0), np.zeros(3))


def _rolled_up_wake(symmetric_surface: bool = False) -> tuple[np.ndarray, WakeGrid]:
    surface = make_surface(gamma=1.0)
    wake, te = make_wake(capacity=4)
    rng = np.random.default_rng(5)
    for g in (1.0, 0.8, 0.6):
        V = wake.velocity_buffer()
        V[...] = (1.0, 0.0, 0.0)
        V += rng.uniform(-0.1, 0.1, size=V.shape)
        if symmetric_surface:
            V[:, 0, 1] = 0.0
        translate_wake_inplace(wake, V, 0.3)
        shed_wake(wake, V[0], 0.3, np.full(3, g), trailing_edge=te)
    return surface, wake


@pytest.mark.parametrize("symmetric", [False, True])
def test_batched_sampling_matches_corner_by_corner(symmetric: bool):
    surface, wake = _rolled_up_wake(symmetric)
    fs = Freestream(vinf=1.0, alpha=0.1)
    ref_frame = Reference()
    out = wake_velocities(None, [surface], [wake], [0], True, symmetric, ref_frame, fs)[0]

    corners = wake.corners()
    for I in np.ndindex(corners.shape[:2]):
        rc = corners[I]
        v = fs.velocity(rc, ref_frame)
        v = v + surface_induced_velocity(rc, surface, symmetric, False, True, False)
        v = v + wake_induced_velocity(rc, wake, symmetric, True, True, True, index=I)
        assert np.allclose(out[I], v, rtol=1e-12, atol=1e-13)


def test_sampling_with_numba_matches_numpy():
    surface, wake = _rolled_up_wake(True)
    args = ([surface], [wake], [0], True, True, Reference(), Freestream(alpha=0.05))
    v_np = wake_velocities(None, *args)[0]
    v_jit = wake_velocities(None, *args, jit=True)[0]
    assert np.allclose(v_np, v_jit, rtol=1e-12, atol=1e-14)
    # root corners stay in the symmetry plane
    assert np.all(v_jit[: wake.nwake + 1, 0, 1] == 0.0)


def test_sampling_across_surfaces_uses_finite_core():
    surface, wake = _rolled_up_wake()
    other = WakeGrid.from_trailing_edge(trailing_edge_corners(surface) + [0.0, 0.0, 0.4], 2, core_size=0.2)
    V = other.velocity_buffer()
    V[...] = (1.0, 0.0, 0.0)
    shed_wake(other, V[0], 0.3, np.ones(3))
    fs = Freestream()
    same = wake_velocities(None, [surface, surface], [wake, other], [0, 0], True, False, Reference(), fs)
    apart = wake_velocities(None, [surface, surface], [wake, other], [0, 1], True, False, Reference(), fs)
    # only the core of the other wake's panels differs
    assert not np.allclose(same[0][: wake.nwake + 1], apart[0][: wake.nwake + 1])
    corners = wake.corners()
    I = (1, 2)
    v = fs.velocity(corners[I], Reference())
    for same_id in (True, False):
        v = v + surface_induced_velocity(corners[I], surface, False, False, same_id, False)
    v = v + wake_induced_velocity(corners[I], wake, False, True, True, True, index=I)
    v = v + wake_induced_velocity(corners[I], other, False, False, False, True)
    assert np.allclose(apart[0][I], v, rtol=1e-12, atol=1e-13)
