import numpy as np
import pytest

from pooledbewley.core.errors import InsufficientDataError
from pooledbewley.core.panel import (
    HalfSample,
    build_panel,
    half_bounds,
    min_obs,
    sample_diagnostics,
    unit_index,
)


def _long(lengths, seed=0):
    """Stacked random panel with the given number of periods per unit."""
    rng = np.random.default_rng(seed)
    ids = np.concatenate([np.full(T, i) for i, T in enumerate(lengths)])
    times = np.concatenate([np.arange(T) for T in lengths])
    n = ids.shape[0]
    return rng.standard_normal(n), rng.standard_normal((n, 1)), ids, times


def test_units_sorted_by_id_and_time():
    y, X, ids, times = _long([5, 4, 6])
    perm = np.random.default_rng(1).permutation(y.shape[0])
    panel = build_panel(y[perm], X[perm], ids[perm], times[perm], lag_order=1)
    assert [u.uid for u in panel.units] == [0, 1, 2]
    for u in panel.units:
        assert np.all(np.diff(u.times) > 0)
        # rows point back into the caller's (permuted) order
        np.testing.assert_array_equal(u.y, y[perm][u.rows])
    assert panel.n_obs == 15
    np.testing.assert_array_equal(panel.offsets, [0, 5, 9, 15])


def test_duplicate_unit_time_raises():
    ids = np.array([1, 1, 2, 2])
    times = np.array([0, 0, 0, 1])
    with pytest.raises(ValueError, match="Duplicate"):
        unit_index(ids, times)


def test_minimum_length_boundary():
    assert min_obs(1) == 3
    y, X, ids, times = _long([3, 5])
    build_panel(y, X, ids, times, lag_order=1)  # T_i = p + 2 is admissible

    y, X, ids, times = _long([2, 5])
    with pytest.raises(InsufficientDataError) as excinfo:
        build_panel(y, X, ids, times, lag_order=1)
    assert excinfo.value.unit == 0
    assert excinfo.value.required == 3
    assert "unit=0" in str(excinfo.value)


def test_non_finite_inputs_raise():
    y, X, ids, times = _long([4, 4])
    y[2] = np.nan
    with pytest.raises(ValueError, match="NA/NaN/Inf"):
        build_panel(y, X, ids, times, lag_order=1)
    y, X, ids, times = _long([4, 4])
    times = times.astype(float)
    times[0] = np.nan
    with pytest.raises(ValueError, match="time identifiers"):
        build_panel(y, X, ids, times, lag_order=1)


@pytest.mark.parametrize(
    ("n", "first", "second"),
    [(8, (0, 4), (4, 8)), (7, (0, 4), (4, 7)), (5, (0, 3), (3, 5))],
)
def test_half_bounds(n, first, second):
    sl1 = half_bounds(n, HalfSample.FIRST)
    sl2 = half_bounds(n, HalfSample.SECOND)
    assert (sl1.start, sl1.stop) == first
    assert (sl2.start, sl2.stop) == second
    assert half_bounds(n, HalfSample.FULL) == slice(0, n)


def test_half_sample_too_short():
    y, X, ids, times = _long([7])
    panel = build_panel(y, X, ids, times, lag_order=2)
    first = panel.half(HalfSample.FIRST, 2)
    assert first.units[0].n_obs == 4
    with pytest.raises(InsufficientDataError) as excinfo:
        panel.half(HalfSample.SECOND, 2)
    assert excinfo.value.half == "second-half"
    assert excinfo.value.n_obs == 3


def test_period_codes_shared_across_units():
    y, X, ids, times = _long([4, 4])
    times = times + 2000
    panel = build_panel(y, X, ids, times, lag_order=1)
    assert panel.n_periods == 4
    np.testing.assert_array_equal(panel.units[0].period_codes, panel.units[1].period_codes)
    np.testing.assert_array_equal(panel.stacked_period_codes(), [0, 1, 2, 3, 0, 1, 2, 3])


def test_with_data_and_diagnostics():
    y, X, ids, times = _long([4, 6])
    panel = build_panel(y, X, ids, times, lag_order=1, var_names=["gdp"])
    new = panel.with_data([np.zeros(4), np.ones(6)], [np.zeros((4, 1)), np.ones((6, 1))])
    assert new.units[1].y.sum() == 6.0
    assert panel.units[1].y.sum() != 6.0
    with pytest.raises(ValueError, match="expects 4"):
        panel.with_data([np.zeros(5), np.ones(6)], [np.zeros((4, 1)), np.ones((6, 1))])
    diag = sample_diagnostics(panel)
    assert diag == {"N": 2, "n_obs": 10, "T_min": 4, "T_avg": 5.0, "T_max": 6}
    assert panel.var_names == ("gdp",)
