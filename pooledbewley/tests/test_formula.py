import numpy as np
import pandas as pd
import pytest

from pooledbewley.utils.formula import FormulaParser


def _toy_df() -> pd.DataFrame:
    n = 10
    return pd.DataFrame(
        {
            "y": np.arange(n, dtype=float),
            "x1": np.arange(n, dtype=float) + 1.0,
            "x2": np.sin(np.arange(n, dtype=float)),
            "id": np.repeat([1, 2], 5),
            "t": np.tile(np.arange(5), 2),
        },
        index=pd.RangeIndex(n),
    )


def test_parse_drops_intercept() -> None:
    out = FormulaParser(_toy_df(), id_name="id", t_name="t").parse("y ~ x1 + x2")
    assert out["var_names"] == ["x1", "x2"]
    assert out["X"].shape == (10, 2)
    assert out["y_name"] == "y"
    np.testing.assert_array_equal(out["ids"], np.repeat([1, 2], 5))
    np.testing.assert_array_equal(out["times"], np.tile(np.arange(5), 2))


def test_explicit_intercept_is_still_removed() -> None:
    out = FormulaParser(_toy_df(), id_name="id", t_name="t").parse("y ~ 1 + x1")
    assert out["var_names"] == ["x1"]


def test_interaction_terms() -> None:
    out = FormulaParser(_toy_df(), id_name="id", t_name="t").parse("y ~ x1 * x2")
    assert out["var_names"] == ["x1", "x2", "x1:x2"]
    np.testing.assert_allclose(out["X"]["x1:x2"], _toy_df()["x1"] * _toy_df()["x2"])


def test_missing_rows_dropped() -> None:
    df = _toy_df()
    df.loc[3, "x2"] = np.nan
    df.loc[7, "t"] = np.nan
    out = FormulaParser(df, id_name="id", t_name="t").parse("y ~ x1 + x2")
    assert list(out["row_index"]) == [0, 1, 2, 4, 5, 6, 8, 9]
    assert out["y"].shape == (8,)
    assert len(out["ids"]) == 8


def test_formula_errors() -> None:
    df = _toy_df()
    p = FormulaParser(df, id_name="id", t_name="t")
    with pytest.raises(ValueError, match="exactly one"):
        p.parse("y x1")
    with pytest.raises(ValueError, match="both"):
        p.parse("y ~ ")
    with pytest.raises(ValueError, match="no regressors"):
        p.parse("y ~ 1")
    with pytest.raises(ValueError, match="not found"):
        FormulaParser(df, id_name="firm", t_name="t")
    with pytest.raises(TypeError):
        FormulaParser(df.to_numpy(), id_name="id", t_name="t")
