"""Shared helper utilities.

Label rendering and result collection for the output modules.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from collections.abc import Sequence

    from pooledbewley.estimators.base import EstimationResult

__all__ = [
    "collect_info",
    "collect_param_index",
    "escape_latex",
    "format_value",
    "keep_params",
    "pretty_term",
]


_LATEX_ESCAPES: tuple[tuple[str, str], ...] = (
    ("\\", r"\textbackslash{}"),
    ("&", r"\&"),
    ("%", r"\%"),
    ("$", r"\$"),
    ("#", r"\#"),
    ("_", r"\_"),
    ("{", r"\{"),
    ("}", r"\}"),
    ("~", r"\textasciitilde{}"),
    ("^", r"\textasciicircum{}"),
)


def collect_param_index(results: Sequence[EstimationResult]) -> list[Any]:
    """Regressor names across results, in order of first appearance."""
    seen: dict[Any, None] = {}
    for res in results:
        for name in res.params.index:
            seen.setdefault(name, None)
    return list(seen)


def keep_params(names: Sequence[Any], patterns: Sequence[str] | None) -> list[Any]:
    """Names matching any regex in ``patterns`` (all names when None)."""
    if not patterns:
        return list(names)
    out = []
    for name in names:
        text = str(name)
        for pat in patterns:
            try:
                hit = re.search(pat, text) is not None
            except re.error:
                hit = text == pat
            if hit:
                out.append(name)
                break
    return out


def escape_latex(obj: Any) -> str:
    """Minimal LaTeX escaping (consistent with tabulate's expectations)."""
    text = str(obj)
    for old, new in _LATEX_ESCAPES:
        text = text.replace(old, new)
    return text


def pretty_term(name: Any, *, style: str = "paper") -> str:
    """Lightweight pretty-printer for parameter labels.

    ``style='paper'`` replaces underscores with spaces; escaping for LaTeX
    is left to :func:`escape_latex` to avoid double-escaping.
    """
    text = str(name)
    return text.replace("_", " ") if style == "paper" else text


def format_value(val: Any, fmt: str = ".6g") -> str:
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, float):
        return f"{val:{fmt}}"
    return "" if val is None else str(val)


def collect_info(results: Sequence[EstimationResult], key: str, label: str | None = None) -> list[str]:
    """One table row: ``label`` followed by ``model_info[key]`` of each result."""
    return [label or key, *(format_value(res.model_info.get(key)) for res in results)]
