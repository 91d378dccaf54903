"""Formula parser for pooledbewley.

Patsy-based parsing of ``"y ~ x1 + x2"`` long-run relations together with
the unit and time identifier columns of the panel.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
import patsy

__all__ = ["FormulaParser"]


class FormulaParser:
    """Turn a long-run formula and a panel DataFrame into estimation arrays.

    The intercept is always removed from the design: unit-specific
    intercepts are eliminated by within-unit demeaning inside the estimator.
    Rows with missing values in any used column are dropped, as R/Stata
    model matrices do.
    """

    def __init__(self, data: pd.DataFrame, *, id_name: str, t_name: str) -> None:
        if not isinstance(data, pd.DataFrame):
            raise TypeError("data must be a pandas DataFrame.")
        for col in (id_name, t_name):
            if col not in data.columns:
                raise ValueError(f"Column '{col}' not found in data.")
        self.data = data
        self.id_name = id_name
        self.t_name = t_name

    @staticmethod
    def split(formula: str) -> tuple[str, str]:
        if formula.count("~") != 1:
            raise ValueError("Formula must contain exactly one '~', e.g. 'y ~ x1 + x2'.")
        lhs, rhs = (s.strip() for s in formula.split("~"))
        if not lhs or not rhs:
            raise ValueError("Formula needs both a dependent variable and regressors.")
        return lhs, rhs

    def parse(self, formula: str) -> dict[str, Any]:
        """Return y, X, var_names, ids, times and the index of the rows used."""
        lhs, rhs = self.split(formula)
        na = patsy.NAAction(on_NA="drop")
        # identifiers must be present on every kept row as well
        df = self.data.dropna(subset=[self.id_name, self.t_name])
        y_df, X_df = patsy.dmatrices(
            f"{lhs} ~ ({rhs}) - 1", df, NA_action=na, return_type="dataframe",
        )
        if X_df.shape[1] == 0:
            raise ValueError("Formula has no regressors after removing the intercept.")
        if y_df.shape[1] != 1:
            raise ValueError("The dependent variable must be a single column.")
        rows = X_df.index
        return {
            "y": pd.Series(y_df.iloc[:, 0].to_numpy(dtype=np.float64), index=rows, name=lhs),
            "X": pd.DataFrame(
                X_df.to_numpy(dtype=np.float64), index=rows, columns=list(X_df.columns),
            ),
            "var_names": list(X_df.design_info.column_names),
            "y_name": lhs,
            "ids": df.loc[rows, self.id_name].to_numpy(),
            "times": df.loc[rows, self.t_name].to_numpy(),
            "row_index": rows,
        }
