import pytest
import numpy as np
from pooledbewley.core import bootstrap as bs

# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def rng():
    return np.random.default_rng(12345)

# ---------------------------------------------------------------------
# Unit Tests: Wild Distributions
# ---------------------------------------------------------------------

def test_wild_dist_rademacher(rng):
    D = bs.WildDist("rademacher")
    w = D.draw((1000, 1), rng=rng)
    # Mean 0, Variance 1
    assert np.all(np.isin(w, [-1, 1]))
    assert np.abs(w.mean()) < 0.1
    assert np.isclose(w.std(), 1.0, atol=0.1)

def test_wild_dist_mammen(rng):
    D = bs.WildDist("mammen")
    w = D.draw((2000, 1), rng=rng)
    unique_vals = np.unique(np.round(w, 5))
    assert len(unique_vals) == 2
    assert -0.61803 in unique_vals
    assert 1.61803 in unique_vals
    assert np.abs(w.mean()) < 0.1
    assert np.isclose(w.std(), 1.0, atol=0.1)

def test_wild_dist_webb(rng):
    D = bs.WildDist("webb")
    w = D.draw((1000, 1), rng=rng)
    assert len(np.unique(w)) == 6
    assert np.abs(w.mean()) < 0.1
    assert np.isclose(w.std(), 1.0, atol=0.1)

def test_wild_dist_unknown():
    with pytest.raises(ValueError, match="Unknown wild distribution"):
        bs.WildDist("pareto")

# ---------------------------------------------------------------------
# Unit Tests: Multiplier layouts
# ---------------------------------------------------------------------

def test_wild_multipliers_length(rng):
    w = bs.wild_multipliers(17, rng=rng)
    assert w.shape == (17,)
    assert np.all(np.abs(w) == 1.0)

def test_period_multipliers_shared_within_period(rng):
    codes = np.array([0, 1, 2, 0, 1, 2, 1])
    w = bs.period_multipliers(codes, 3, rng=rng)
    assert w.shape == (7,)
    assert w[0] == w[3]
    assert w[1] == w[4] == w[6]
    assert w[2] == w[5]

def test_period_multipliers_code_range(rng):
    with pytest.raises(ValueError, match="period_codes"):
        bs.period_multipliers(np.array([0, 3]), 3, rng=rng)

# ---------------------------------------------------------------------
# Unit Tests: Replication streams
# ---------------------------------------------------------------------

def test_replication_rngs_reproducible():
    a = [g.random() for g in bs.replication_rngs(7, 5)]
    b = [g.random() for g in bs.replication_rngs(7, 5)]
    assert a == b
    # Replication r does not depend on the total number of replications
    c = bs.replication_rngs(7, 10)[3].random()
    assert c == a[3]

def test_replication_rngs_streams_differ():
    a = bs.replication_rngs(7, 3, stream="uncorrected")[0].random()
    b = bs.replication_rngs(7, 3, stream="jackknife")[0].random()
    assert a != b
    with pytest.raises(ValueError, match="Unknown replication stream"):
        bs.replication_rngs(7, 3, stream="other")

# ---------------------------------------------------------------------
# Unit Tests: Percentile-t inference
# ---------------------------------------------------------------------

def test_finite_sample_quantile_warns_when_too_few_draws():
    t = np.arange(1.0, 10.0)  # B = 9
    with pytest.warns(UserWarning, match="cannot resolve"):
        q = bs.finite_sample_quantile(t, 0.95)
    assert q == 9.0

def test_finite_sample_quantile_rejects_non_finite():
    with pytest.raises(ValueError, match="non-finite"):
        bs.finite_sample_quantile(np.array([1.0, np.nan]), 0.5)
    with pytest.raises(ValueError, match="at least one"):
        bs.finite_sample_quantile(np.array([]), 0.5)

def test_studentized_deviation():
    d = bs.studentized_deviation(
        np.array([1.5, -1.0]), np.array([1.0, 1.0]), np.diag([0.25, 4.0]),
    )
    np.testing.assert_allclose(d, [1.0, 1.0])
    with pytest.raises(np.linalg.LinAlgError):
        bs.studentized_deviation(np.zeros(2), np.zeros(2), np.diag([1.0, 0.0]))

def test_symmetric_interval():
    theta = np.array([1.0, 2.0])
    cov = np.diag([4.0, 1.0])
    t_star = np.vstack([np.full(99, 2.0), np.full(99, 1.0)])
    bounds, crit = bs.symmetric_interval(theta, cov, t_star, 0.95)
    np.testing.assert_allclose(crit, [2.0, 1.0])
    np.testing.assert_allclose(bounds, [[-3.0, 5.0], [1.0, 3.0]])

def test_bootstrap_se():
    draws = np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 0.0]])
    np.testing.assert_allclose(bs.bootstrap_se(draws), [1.0, 0.0])
    with pytest.raises(ValueError, match="at least 2 draws"):
        bs.bootstrap_se(np.ones((2, 1)))
    with pytest.raises(ValueError, match="Non-finite"):
        bs.bootstrap_se(np.array([[1.0, np.inf]]))
