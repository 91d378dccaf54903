"""Configuration and result containers.

This module defines the estimation configuration, the confidence interval
record and the immutable estimation result returned by the pooled Bewley
estimator.
"""

# pooledbewley/estimators/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from pooledbewley.core import bootstrap as bt
from pooledbewley.core.errors import ConfigurationError
from pooledbewley.core.options import (
    BiasCorrection,
    RegressorDynamics,
    ResidualMode,
    coerce_option,
)

__all__ = [
    "DEFAULT_SEED",
    "ConfidenceInterval",
    "EstimationResult",
    "PBConfig",
    "normalize_ci_level",
]

DEFAULT_SEED: int = 123456


def normalize_ci_level(level: float | None, *, default: float = 0.95) -> float:
    """Normalize confidence level to a probability (0, 1)."""
    if level is None:
        coerced = float(default)
    else:
        try:
            coerced = float(level)
        except (TypeError, ValueError):
            raise ConfigurationError("confidence_level", f"not a number: {level!r}") from None
        # Accept percentage-style inputs (e.g., 90 for 90%)
        if coerced > 1.0:
            coerced /= 100.0
    if not (0.0 < coerced < 1.0):
        raise ConfigurationError(
            "confidence_level", "must be in (0, 1); supply e.g. 0.95 or 95",
        )
    return coerced


def _positive_int(value: Any, option: str, *, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(option, f"expected an integer, got {value!r}")
    if int(value) < minimum:
        raise ConfigurationError(option, f"must be >= {minimum}, got {value}")
    return int(value)


# ---------------------------------------------------------------------
# Estimation configuration
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PBConfig:
    """Options of a pooled Bewley fit.

    Notes
    -----
    - ``bias_correction``: none, half-panel jackknife, or simulation
      (bootstrap) bias correction.
    - ``bootstrap_ci``: request percentile-t bootstrap intervals for the
      reported estimator variants.
    - Replications: default is 2000 (``bootstrap_reps``).
    - ``residual_mode``: independent (unit, period) multipliers or one
      multiplier per period shared across units.
    - ``regressor_dynamics``: keep observed regressors fixed, or regenerate
      them from a VAR in differences (``var_x``) augmented with lagged Δy
      (``var_xy``) of order ``regressor_lag_order`` (defaults to
      ``lag_order``).
    - Reproducibility: ``random_seed`` fixes every replication's stream;
      ``n_jobs`` only changes scheduling, never results.

    String values are coerced to the enumerations; invalid values raise
    ``ConfigurationError`` naming the option.
    """

    lag_order: int = 1
    bias_correction: BiasCorrection | str = BiasCorrection.NONE
    bootstrap_ci: bool = False
    bootstrap_reps: int = bt.DEFAULT_BOOTSTRAP_ITERATIONS
    residual_mode: ResidualMode | str = ResidualMode.INDEPENDENT
    regressor_dynamics: RegressorDynamics | str = RegressorDynamics.FIXED
    regressor_lag_order: int | None = None
    confidence_level: float = 0.95
    random_seed: int | None = DEFAULT_SEED
    wild_dist: str = "rademacher"
    n_jobs: int = 1
    full_output: bool = False

    def __post_init__(self) -> None:
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "lag_order", _positive_int(self.lag_order, "lag_order"))
        object.__setattr__(
            self,
            "bias_correction",
            coerce_option(BiasCorrection, self.bias_correction, option="bias_correction"),
        )
        object.__setattr__(
            self,
            "residual_mode",
            coerce_option(ResidualMode, self.residual_mode, option="residual_mode"),
        )
        object.__setattr__(
            self,
            "regressor_dynamics",
            coerce_option(RegressorDynamics, self.regressor_dynamics, option="regressor_dynamics"),
        )
        if self.regressor_lag_order is not None:
            object.__setattr__(
                self,
                "regressor_lag_order",
                _positive_int(self.regressor_lag_order, "regressor_lag_order"),
            )
        object.__setattr__(
            self, "bootstrap_reps", _positive_int(self.bootstrap_reps, "bootstrap_reps", minimum=2),
        )
        object.__setattr__(
            self, "confidence_level", normalize_ci_level(self.confidence_level),
        )
        if self.random_seed is not None:
            object.__setattr__(
                self, "random_seed", _positive_int(self.random_seed, "random_seed", minimum=0),
            )
        object.__setattr__(self, "n_jobs", _positive_int(self.n_jobs, "n_jobs"))
        try:
            bt.WildDist(self.wild_dist)
        except ValueError as exc:
            raise ConfigurationError("wild_dist", str(exc)) from None
        object.__setattr__(self, "bootstrap_ci", bool(self.bootstrap_ci))
        object.__setattr__(self, "full_output", bool(self.full_output))

    @property
    def px(self) -> int:
        """Lag order of the regressor VAR."""
        return self.lag_order if self.regressor_lag_order is None else int(self.regressor_lag_order)

    @property
    def needs_bootstrap(self) -> bool:
        return self.bootstrap_ci or self.bias_correction is BiasCorrection.BOOTSTRAP


# ---------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ConfidenceInterval:
    """Percentile-t bootstrap interval for one estimator variant."""

    variant: str
    level: float
    bounds: pd.DataFrame
    critical_values: pd.Series
    n_boot: int

    @property
    def lower(self) -> pd.Series:
        return self.bounds["lower"]

    @property
    def upper(self) -> pd.Series:
        return self.bounds["upper"]


@dataclass(frozen=True)
class EstimationResult:
    """Immutable outcome of a pooled Bewley fit.

    ``params`` is the reported estimate (bias-corrected when a correction
    was requested) and ``cov`` its covariance. ``intervals`` maps the
    variants ``'uncorrected'``, ``'bias-corrected'`` and ``'jackknife'`` to
    their bootstrap intervals. ``extra`` keeps intermediate estimates,
    replicate draws and per-unit short-run tables.
    """

    params: pd.Series
    cov: pd.DataFrame
    n_obs: int
    sample: dict[str, float]
    config: PBConfig
    intervals: dict[str, ConfidenceInterval] = field(default_factory=dict)
    model_info: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.cov.index.equals(self.params.index) or not self.cov.columns.equals(self.params.index):
            raise ValueError("cov must be indexed by params on both axes.")
        if not np.all(np.isfinite(self.params.to_numpy())):
            raise ValueError("params contains non-finite values.")

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        head = ", ".join(f"{k}={v}" for k, v in self.model_info.items())
        return f"EstimationResult(k={len(self.params)}, n={self.n_obs}, {head})"

    @property
    def se(self) -> pd.Series:
        return pd.Series(np.sqrt(np.diag(self.cov.to_numpy())), index=self.params.index, name="se")

    def ci(self, variant: str | None = None) -> pd.DataFrame:
        """(k x 2) interval of ``variant``; defaults to the reported estimator's."""
        if not self.intervals:
            raise ValueError("No bootstrap intervals were computed; fit with bootstrap_ci=True.")
        key = variant or str(self.model_info.get("Variant", "uncorrected"))
        if key not in self.intervals:
            raise KeyError(f"No '{key}' interval; available: {sorted(self.intervals)}")
        return self.intervals[key].bounds
