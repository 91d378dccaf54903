import numpy as np
import pytest

from pooledbewley.core import linalg as la
from pooledbewley.core.errors import InsufficientDataError, SingularMatrixError
from pooledbewley.core.panel import HalfSample, build_panel
from pooledbewley.core.pb import (
    KAPPA,
    compute_omega,
    compute_omegajk,
    jackknife_combine,
    pbestim,
    pbestim_jackknife,
    unit_scores,
)
from pooledbewley.sim.montecarlo import simulate_ardl_panel


def _exact_panel(beta, *, N=4, T=15, psi=0.5, seed=0):
    """y = a_i + x β + ψ Δx with random-walk regressors and no noise."""
    rng = np.random.default_rng(seed)
    beta = np.atleast_1d(beta)
    k = beta.shape[0]
    ys, Xs, ids, times = [], [], [], []
    for i in range(N):
        x = np.cumsum(rng.standard_normal((T + 1, k)), axis=0)
        dx = np.diff(x, axis=0)
        x = x[1:]
        ys.append(rng.standard_normal() + x @ beta + dx @ np.full(k, psi))
        Xs.append(x)
        ids.append(np.full(T, i))
        times.append(np.arange(T))
    return build_panel(
        np.concatenate(ys), np.vstack(Xs), np.concatenate(ids), np.concatenate(times),
        lag_order=1,
    )


def _ardl_panel(N=8, T=20, beta=1.0, seed=5, lag_order=1):
    df = simulate_ardl_panel(N, T, beta, seed=seed)
    cols = [c for c in df.columns if c.startswith("x")]
    return build_panel(df["y"], df[cols], df["id"], df["t"], lag_order=lag_order, var_names=cols)


# ---------------------------------------------------------------------
# Point estimator
# ---------------------------------------------------------------------

@pytest.mark.parametrize("beta", [[0.7], [1.5, -0.4]])
def test_exact_recovery_without_noise(beta):
    panel = _exact_panel(beta)
    fit = pbestim(panel, 1)
    np.testing.assert_allclose(fit.beta, beta, atol=1e-8)
    assert fit.N == 4
    assert fit.half is HalfSample.FULL


def test_static_relation_without_short_run_terms_is_singular():
    # y = a_i + x β exactly: demeaned y_{t-1} is a linear function of x_{t-1},
    # so the long-block cross-product has no full rank
    rng = np.random.default_rng(0)
    N, T = 4, 15
    x = np.cumsum(rng.standard_normal((N, T)), axis=1)
    y = rng.standard_normal((N, 1)) + 0.7 * x
    panel = build_panel(
        y.ravel(), x.reshape(-1, 1), np.repeat(np.arange(N), T), np.tile(np.arange(T), N),
        lag_order=1,
    )
    with pytest.raises(SingularMatrixError, match="long-block") as excinfo:
        pbestim(panel, 1)
    assert excinfo.value.unit == 0
    assert excinfo.value.half == "full"


def test_scores_sum_to_zero_at_estimate():
    fit = pbestim(_ardl_panel(), 1)
    W = unit_scores(fit, fit.beta)
    assert W.shape == (8, 1)
    scale = np.abs(fit.B).max()
    assert np.abs(W.sum(axis=0)).max() <= 1e-8 * scale


def test_unit_order_does_not_matter():
    df = simulate_ardl_panel(6, 20, 1.0, seed=11)
    p1 = build_panel(df["y"], df[["x"]], df["id"], df["t"], lag_order=1)
    p2 = build_panel(df["y"], df[["x"]], 100 - df["id"], df["t"], lag_order=1)
    np.testing.assert_allclose(pbestim(p1, 1).beta, pbestim(p2, 1).beta, rtol=1e-10)


# ---------------------------------------------------------------------
# Covariance
# ---------------------------------------------------------------------

def test_covariance_sandwich_form():
    fit = pbestim(_ardl_panel(beta=[1.0, 0.5]), 1)
    omega = compute_omega(fit)
    W = unit_scores(fit, fit.beta)
    A_inv = np.linalg.inv(fit.A)
    np.testing.assert_allclose(omega, A_inv @ (W.T @ W) @ A_inv, rtol=1e-8)
    np.testing.assert_array_equal(omega, omega.T)
    assert la.is_psd(omega)
    assert np.all(np.diag(omega) > 0)


@pytest.mark.parametrize("p", [1, 2])
def test_jackknife_covariance_symmetric_psd(p):
    panel = _ardl_panel(T=30, lag_order=p)
    jk = pbestim_jackknife(panel, p)
    omega = compute_omegajk(jk)
    np.testing.assert_array_equal(omega, omega.T)
    assert la.is_psd(omega)


# ---------------------------------------------------------------------
# Jackknife
# ---------------------------------------------------------------------

def test_jackknife_combine():
    assert KAPPA == pytest.approx(1.0 / 3.0)
    out = jackknife_combine(np.array([1.0]), np.array([2.0]), np.array([4.0]))
    np.testing.assert_allclose(out, [1.0 / 3.0])
    b = np.array([0.3, -2.0])
    np.testing.assert_allclose(jackknife_combine(b, b, b), b)


def test_jackknife_matches_separate_half_panels():
    df = simulate_ardl_panel(6, 20, 1.0, seed=3)
    full = build_panel(df["y"], df[["x"]], df["id"], df["t"], lag_order=1)
    first_df = df[df["t"] < 10]
    second_df = df[df["t"] >= 10]
    b_full = pbestim(full, 1).beta
    b_first = pbestim(
        build_panel(first_df["y"], first_df[["x"]], first_df["id"], first_df["t"], lag_order=1), 1,
    ).beta
    b_second = pbestim(
        build_panel(second_df["y"], second_df[["x"]], second_df["id"], second_df["t"], lag_order=1), 1,
    ).beta
    expected = b_full - (1.0 / 3.0) * ((b_first + b_second) / 2.0 - b_full)

    jk = pbestim_jackknife(full, 1)
    np.testing.assert_allclose(jk.beta, expected, rtol=1e-10)
    np.testing.assert_allclose(jk.first.beta, b_first, rtol=1e-10)
    np.testing.assert_allclose(jk.second.beta, b_second, rtol=1e-10)
    assert jk.second.half is HalfSample.SECOND


def test_short_half_sample_raises():
    df = simulate_ardl_panel(4, 20, 1.0, seed=9)
    # unit 3 keeps 5 periods: its second half has 2 < p + 2 observations
    df = df[(df["id"] != 3) | (df["t"] < 5)]
    panel = build_panel(df["y"], df[["x"]], df["id"], df["t"], lag_order=1)
    with pytest.raises(InsufficientDataError) as excinfo:
        pbestim(panel, 1, HalfSample.SECOND)
    assert excinfo.value.unit == 3
    assert excinfo.value.half == "second-half"
