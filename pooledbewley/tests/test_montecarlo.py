import numpy as np
import pandas as pd
import pytest

from pooledbewley.estimators.pooled_bewley import PooledBewley
from pooledbewley.sim.montecarlo import coverage_experiment, simulate_ardl_panel


def test_simulated_panel_layout():
    df = simulate_ardl_panel(4, 15, [1.0, 2.0], seed=0)
    assert list(df.columns) == ["id", "t", "y", "x1", "x2"]
    assert len(df) == 60
    assert df.groupby("id")["t"].apply(lambda s: list(s) == list(range(15))).all()
    assert np.isfinite(df[["y", "x1", "x2"]].to_numpy()).all()
    one = simulate_ardl_panel(2, 8, 1.0, seed=0)
    assert list(one.columns) == ["id", "t", "y", "x"]


def test_simulated_panel_reproducible_and_unbalanced():
    a = simulate_ardl_panel(6, 20, 1.0, seed=4)
    b = simulate_ardl_panel(6, 20, 1.0, seed=4)
    pd.testing.assert_frame_equal(a, b)
    u = simulate_ardl_panel(6, 20, 1.0, seed=4, unbalanced=True)
    sizes = u.groupby("id").size()
    assert sizes.max() <= 20
    assert sizes.min() >= 15
    assert (u.groupby("id")["t"].max() == 19).all()


def test_simulated_panel_validation():
    with pytest.raises(ValueError, match="T >= 4"):
        simulate_ardl_panel(3, 2, 1.0)
    with pytest.raises(ValueError, match="corr_uv"):
        simulate_ardl_panel(3, 10, 1.0, corr_uv=1.0)


def test_long_run_coefficient_recovered_on_large_panel():
    df = simulate_ardl_panel(40, 80, 1.0, seed=12, corr_uv=0.0)
    res = PooledBewley.from_formula("y ~ x", df, id="id", time="t").fit()
    assert res.params["x"] == pytest.approx(1.0, abs=0.1)


def test_coverage_experiment_structure():
    out = coverage_experiment(3, 5, 20, 1.0, bootstrap_ci=True, bootstrap_reps=20)
    assert out.index.names == ["variant", "regressor"]
    assert list(out.columns) == ["bias", "rmse", "coverage", "n_reps"]
    row = out.loc[("uncorrected", "x")]
    assert 0.0 <= row["coverage"] <= 1.0
    assert row["rmse"] >= abs(row["bias"])
    assert row["n_reps"] == 3

    point = coverage_experiment(2, 5, 20, 1.0, bias_correction="jackknife")
    assert list(point.index) == [("jackknife", "x")]
    assert np.isnan(point["coverage"].iloc[0])


@pytest.mark.slow
def test_percentile_t_coverage():
    out = coverage_experiment(
        200, 10, 40, 1.0,
        seed=2024,
        bootstrap_ci=True,
        bootstrap_reps=199,
        confidence_level=0.90,
        dgp_kwargs={"corr_uv": 0.0},
    )
    cover = out.loc[("uncorrected", "x"), "coverage"]
    assert 0.80 <= cover <= 0.97
