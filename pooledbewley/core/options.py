"""Closed option sets for bias correction and bootstrap resampling."""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from .errors import ConfigurationError

__all__ = [
    "BiasCorrection",
    "RegressorDynamics",
    "ResidualMode",
    "coerce_option",
]

_E = TypeVar("_E", bound=Enum)


class BiasCorrection(str, Enum):
    NONE = "none"
    JACKKNIFE = "jackknife"
    BOOTSTRAP = "bootstrap"


class ResidualMode(str, Enum):
    """How wild multipliers are assigned to stored residuals."""

    INDEPENDENT = "independent"
    CROSS_SECTIONAL_LINKED = "cross_sectional_linked"


class RegressorDynamics(str, Enum):
    """Model for the regressors in the synthetic panels.

    ``FIXED`` reuses the observed regressor paths, ``VAR_X`` regenerates them
    from a VAR in first differences, ``VAR_XY`` adds lagged Δy to that VAR.
    """

    FIXED = "fixed"
    VAR_X = "var_x"
    VAR_XY = "var_xy"

    @property
    def simulates_x(self) -> bool:
        return self is not RegressorDynamics.FIXED


_ALIASES: dict[type[Enum], dict[str, str]] = {
    BiasCorrection: {
        "": "none", "no": "none", "off": "none",
        "jk": "jackknife", "hpj": "jackknife",
        "bs": "bootstrap", "boot": "bootstrap", "sim": "bootstrap", "simulation": "bootstrap",
    },
    ResidualMode: {
        "iid": "independent", "indep": "independent", "wild": "independent",
        "csd": "cross_sectional_linked", "linked": "cross_sectional_linked",
        "cross_sectional": "cross_sectional_linked", "cross_section": "cross_sectional_linked",
    },
    RegressorDynamics: {
        "exogenous": "fixed", "exog": "fixed",
        "varx": "var_x", "var": "var_x", "varxy": "var_xy",
    },
}


def coerce_option(enum_cls: type[_E], value: object, *, option: str) -> _E:
    """Map a string (or enum member) to ``enum_cls``; raise ``ConfigurationError`` otherwise."""
    if isinstance(value, enum_cls):
        return value
    if value is None:
        key = ""
    elif isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
    else:
        raise ConfigurationError(option, f"expected a string or {enum_cls.__name__}, got {value!r}")
    key = _ALIASES.get(enum_cls, {}).get(key, key)
    try:
        return enum_cls(key)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)  # type: ignore[attr-defined]
        raise ConfigurationError(option, f"unrecognized value {value!r}; allowed: {allowed}") from None
