"""Summary tables for pooled Bewley results.

Generates text or LaTeX tables of coefficients, asymptotic standard errors
and bootstrap intervals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

import pandas as pd
from tabulate import tabulate

from pooledbewley.utils.helpers import collect_info as _collect_info
from pooledbewley.utils.helpers import collect_param_index as _collect_param_index
from pooledbewley.utils.helpers import escape_latex as _escape_latex
from pooledbewley.utils.helpers import format_value as _format_value
from pooledbewley.utils.helpers import keep_params as _keep_params
from pooledbewley.utils.helpers import pretty_term as _pretty_term

if TYPE_CHECKING:
    from pooledbewley.estimators.base import EstimationResult

__all__ = ["coef_table", "modelsummary", "pbsummary"]

_FOOTER_KEYS: tuple[tuple[str, str], ...] = (
    ("Variant", "Estimator variant"),
    ("LagOrder", "Lag order"),
    ("N", "Units"),
    ("BootstrapReps", "Bootstrap reps"),
    ("ResidualMode", "Residual mode"),
    ("RegressorDynamics", "Regressor dynamics"),
    ("ConfidenceLevel", "CI level"),
)


def coef_table(res: EstimationResult, *, variant: str | None = None) -> pd.DataFrame:
    """Coefficient, standard error and (if available) interval as a DataFrame."""
    out = pd.DataFrame({"coef": res.params, "se": res.se})
    if res.intervals:
        key = variant or str(res.model_info.get("Variant", "uncorrected"))
        if key in res.intervals:
            ci = res.intervals[key]
            pct = f"{100.0 * ci.level:g}%"
            out[f"[{pct}"] = ci.lower
            out[f"{pct}]"] = ci.upper
    return out


def pbsummary(
    res: EstimationResult,
    *,
    output: str = "text",
    coef_format: str = ".6g",
) -> str:
    """Single-model table: coefficients, intervals of every variant, sample info."""
    rows: list[list[str]] = []
    headers = ["", "coef", "se"]
    variants = list(res.intervals)
    for v in variants:
        headers += [f"{v} lower", f"{v} upper"]
    for name in res.params.index:
        row = [
            _pretty_term(name),
            f"{res.params[name]:{coef_format}}",
            f"{res.se[name]:{coef_format}}",
        ]
        for v in variants:
            b = res.intervals[v].bounds
            row += [f"{b.loc[name, 'lower']:{coef_format}}", f"{b.loc[name, 'upper']:{coef_format}}"]
        rows.append(row)

    footer = [
        ["Observations", str(res.n_obs)],
        ["Units", str(res.sample["N"])],
        ["T min / avg / max", f"{res.sample['T_min']} / {res.sample['T_avg']:.1f} / {res.sample['T_max']}"],
    ]
    for key, label in _FOOTER_KEYS[:2]:
        if key in res.model_info:
            footer.append([label, _format_value(res.model_info[key])])

    if output == "latex":
        body = [[_escape_latex(c) for c in r] for r in rows]
        return cast(
            "str",
            tabulate(
                body + [[""] * len(headers)] + [[_escape_latex(c) for c in f] for f in footer],
                headers=[_escape_latex(h) for h in headers],
                stralign="center",
                tablefmt="latex_booktabs",
            ),
        )
    if output != "text":
        raise ValueError("output must be 'text' or 'latex'")
    table = cast("str", tabulate(rows, headers=headers, stralign="center"))
    info = cast("str", tabulate(footer, tablefmt="plain"))
    title = f"Pooled Bewley estimates (dependent variable: {res.model_info.get('DepVar', 'y')})"
    return f"{title}\n{table}\n\n{info}"


def modelsummary(
    results: list[EstimationResult],
    model_names: list[str] | None = None,
    *,
    coef_format: str = ".6g",
    se_format: str = ".6g",
    output: str = "text",
    keep: list[str] | None = None,
) -> str:
    """Side-by-side table of several fits (coefficient over standard error).

    ``keep`` restricts the rows to regressors matching any of the given
    regular expressions.
    """
    if model_names is None:
        model_names = [f"({i + 1})" for i in range(len(results))]
    if len(model_names) != len(results):
        raise ValueError("model_names must have one entry per result.")
    params = _keep_params(_collect_param_index(results), keep)
    table: list[list[str]] = []
    for name in params:
        coef_row = [_pretty_term(name)]
        se_row = [""]
        for res in results:
            if name in res.params.index:
                coef_row.append(f"{res.params[name]:{coef_format}}")
                se_row.append(f"({res.se[name]:{se_format}})")
            else:
                coef_row += [""]
                se_row += [""]
        table += [coef_row, se_row]
    footer = [_collect_info(results, key, label) for key, label in _FOOTER_KEYS]
    footer = [r for r in footer if any(c for c in r[1:])]
    headers = ["", *model_names]
    sep = ["" for _ in headers]
    if output == "latex":
        body = [[_escape_latex(c) for c in r] for r in [*table, sep, *footer]]
        return cast(
            "str",
            tabulate(body, headers=[_escape_latex(h) for h in headers], stralign="center", tablefmt="latex_booktabs"),
        )
    if output != "text":
        raise ValueError("output must be 'text' or 'latex'")
    return cast("str", tabulate([*table, sep, *footer], headers=headers, stralign="center"))
