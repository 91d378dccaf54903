import numpy as np
import pytest

from pooledbewley.core.annihilator import bewley_stacks, crm, unit_blocks
from pooledbewley.core.errors import SingularMatrixError
from pooledbewley.core.panel import HalfSample, build_panel


def _walks(T, k, seed=0):
    rng = np.random.default_rng(seed)
    y = np.cumsum(rng.standard_normal(T))
    X = np.cumsum(rng.standard_normal((T, k)), axis=0)
    return y, X


def test_bewley_stacks_layout():
    y, X = _walks(12, 1)
    yt, Xt, Q, D = bewley_stacks(y, X, 2)
    assert yt.shape == (10,)
    assert Xt.shape == (10, 1)
    assert Q.shape == (10, 2 + 3 * 1)
    assert D.shape == (10, 2 + 2 * 1)
    # first usable row is t = 2
    np.testing.assert_allclose(Q[0], [y[1], y[0], X[2, 0], X[1, 0], X[0, 0]])
    np.testing.assert_allclose(D[0], [y[2] - y[1], y[1] - y[0], X[2, 0] - X[1, 0], X[1, 0] - X[0, 0]])
    assert np.isfinite(D).all()


@pytest.mark.parametrize(("p", "k", "T"), [(1, 1, 20), (2, 2, 30), (3, 1, 25)])
def test_annihilator_is_rank_k_projection(p, k, T):
    y, X = _walks(T, k, seed=p + k)
    blk = crm(y, X, p)
    M = blk.M
    n = T - p
    assert M.shape == (n, n)
    assert blk.n_rows == n
    np.testing.assert_array_equal(M, M.T)
    np.testing.assert_allclose(M @ M, M, atol=1e-8)
    assert np.trace(M) == pytest.approx(k, abs=1e-8)
    # removes intercepts and the short-run block
    np.testing.assert_allclose(M @ np.ones(n), 0.0, atol=1e-8)
    _, _, _, D = bewley_stacks(y, X, p)
    np.testing.assert_allclose(M @ D, 0.0, atol=1e-7)
    # level stacks are demeaned
    assert abs(blk.yt.mean()) < 1e-12
    np.testing.assert_allclose(blk.Xt.mean(axis=0), 0.0, atol=1e-12)


def test_constant_regressor_is_singular():
    y0, X0 = _walks(10, 1, seed=1)
    y1, _ = _walks(10, 1, seed=2)
    y = np.concatenate([y0, y1])
    X = np.concatenate([X0, np.full((10, 1), 3.0)])
    ids = np.repeat(["a", "b"], 10)
    times = np.tile(np.arange(10), 2)
    panel = build_panel(y, X, ids, times, lag_order=1)
    unit_blocks(panel.units[0], 1)
    with pytest.raises(SingularMatrixError) as excinfo:
        unit_blocks(panel.units[1], 1)
    assert excinfo.value.unit == "b"
    assert excinfo.value.half == "full"
    assert "long-block cross-product" in str(excinfo.value)


def test_half_sample_blocks_use_half_rows():
    y, X = _walks(20, 1, seed=3)
    panel = build_panel(y, X, np.zeros(20), np.arange(20), lag_order=1)
    blk = unit_blocks(panel.units[0], 1, HalfSample.SECOND)
    assert blk.n_rows == 10 - 1
    ref = crm(y[10:], X[10:], 1)
    np.testing.assert_allclose(blk.M, ref.M)
