"""Pooled Bewley (PB) estimator of a homogeneous long-run coefficient.

This module implements the pooled Bewley estimator for dynamic heterogeneous
panels with its asymptotic sandwich covariance, half-panel jackknife and
simulation (bootstrap) bias corrections, and percentile-t bootstrap
confidence intervals built from synthetic panels.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

import numpy as np
import pandas as pd

from pooledbewley.core import bootstrap as bt
from pooledbewley.core import linalg as la
from pooledbewley.core.errors import ConfigurationError, SingularMatrixError
from pooledbewley.core.options import BiasCorrection
from pooledbewley.core.panel import Panel, build_panel, sample_diagnostics
from pooledbewley.core.pb import (
    compute_omega,
    compute_omegajk,
    pbestim,
    pbestim_jackknife,
)
from pooledbewley.core.shortrun import sr_param_est, unit_table
from pooledbewley.core.simulate import gen_simulated_data
from pooledbewley.utils.formula import FormulaParser

from .base import ConfidenceInterval, EstimationResult, PBConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

LOGGER = logging.getLogger(__name__)

ArrayLike = Union[pd.Series, np.ndarray]
MatrixLike = Union[pd.DataFrame, np.ndarray]

# Completion fractions at which replication progress is logged.
PROGRESS_STEPS: tuple[float, ...] = tuple(i / 10.0 for i in range(1, 11))

__all__ = ["PooledBewley", "ReplicateSet", "pbsimul"]


# ---------------------------------------------------------------------
# Bootstrap orchestration
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ReplicateSet:
    """Replicate estimates and absolute studentized deviations, both (k, R)."""

    variant: str
    center: NDArray[np.float64]
    betas: NDArray[np.float64]
    t_stats: NDArray[np.float64]

    @property
    def n_boot(self) -> int:
        return int(self.betas.shape[1])


def _replicate_statistic(
    sim: Panel,
    p: int,
    variant: str,
    shift: NDArray[np.float64] | None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Estimator and covariance of one synthetic panel for ``variant``."""
    if variant == "jackknife":
        jk = pbestim_jackknife(sim, p)
        return jk.beta, compute_omegajk(jk)
    fit = pbestim(sim, p)
    b = fit.beta if shift is None else fit.beta - shift
    return b, compute_omega(fit, b)


def pbsimul(  # noqa: PLR0913
    panel: Panel,
    config: PBConfig,
    center: NDArray[np.float64],
    *,
    variant: str = "uncorrected",
    shift: NDArray[np.float64] | None = None,
    y_name: str = "y",
) -> ReplicateSet:
    """Run ``config.bootstrap_reps`` replications around ``center``.

    Short-run dynamics are fitted once at ``center``; each replication then
    draws a synthetic panel, re-estimates the ``variant`` estimator with its
    covariance, and records ``|β̂_r - center| / se_r`` componentwise.
    ``shift`` is subtracted from every replicate estimate (simulation
    bias correction). Replication ``r`` always consumes the same random
    sub-stream, so ``n_jobs`` does not affect the output.
    """
    p = config.lag_order
    R = config.bootstrap_reps
    center = np.asarray(center, dtype=np.float64).reshape(-1)
    sr = sr_param_est(
        panel, p, center, dynamics=config.regressor_dynamics, px=config.px,
        y_name=y_name,
    )
    rngs = bt.replication_rngs(config.random_seed, R, stream=variant)
    betas = np.empty((panel.k, R), dtype=np.float64)
    t_stats = np.empty((panel.k, R), dtype=np.float64)

    def _one(r: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        sim = gen_simulated_data(
            panel,
            sr,
            residual_mode=config.residual_mode,
            rng=rngs[r],
            dist=config.wild_dist,
        )
        try:
            b_r, cov_r = _replicate_statistic(sim, p, variant, shift)
            return b_r, bt.studentized_deviation(b_r, center, cov_r)
        except SingularMatrixError as exc:
            raise exc.located(replication=r) from exc
        except np.linalg.LinAlgError as exc:
            raise SingularMatrixError(str(exc), replication=r) from exc

    marks = [int(np.ceil(f * R)) for f in PROGRESS_STEPS]

    def _progress(done: int) -> None:
        if done in marks:
            LOGGER.info(
                "Bootstrap (%s): %d%% complete (%d/%d replications)",
                variant, round(100.0 * done / R), done, R,
            )

    if config.n_jobs == 1:
        for r in range(R):
            betas[:, r], t_stats[:, r] = _one(r)
            _progress(r + 1)
    else:
        with ThreadPoolExecutor(max_workers=config.n_jobs) as executor:
            futures = {executor.submit(_one, r): r for r in range(R)}
            done = 0
            try:
                for fut in as_completed(futures):
                    r = futures[fut]
                    betas[:, r], t_stats[:, r] = fut.result()
                    done += 1
                    _progress(done)
            except BaseException:
                for fut in futures:
                    fut.cancel()
                raise
    return ReplicateSet(variant=variant, center=center, betas=betas, t_stats=t_stats)


# ---------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------
class PooledBewley:
    """Pooled Bewley estimator for heterogeneous dynamic panels.

    Estimates the long-run coefficient θ shared by all units in the
    unit-specific ARDL(p, p) models
    ``y_it = a_i + Σ φ_il y_{i,t-l} + Σ β_il' x_{i,t-l} + u_it`` through the
    Bewley transform, instrumenting Δy with lagged levels unit by unit and
    pooling the resulting long-run moments.

    Parameters
    ----------
    y : array-like, shape (n,)
        Dependent variable.
    X : array-like, shape (n, k)
        Regressors of the long-run relation. No constant: unit intercepts
        are eliminated by demeaning.
    unit_ids, time_ids : array-like, shape (n,)
        Unit and time identifiers. Rows may come in any order; each unit is
        sorted by time and its observations are treated as consecutive.
    var_names : Sequence[str], optional
        Regressor names. Taken from ``X.columns`` for a DataFrame.

    Examples
    --------
    >>> from pooledbewley import PooledBewley
    >>> model = PooledBewley.from_formula("y ~ x", df, id="id", time="t")
    >>> res = model.fit(lag_order=1, bias_correction="jackknife", bootstrap_ci=True,
    ...                 bootstrap_reps=999, random_seed=42)
    >>> res.params, res.se, res.ci("jackknife")

    Notes
    -----
    - Every unit needs at least ``lag_order + 2`` observations, and in
      practice enough rows for the ``p + (p+1)k`` instrument block.
    - Bias corrections: half-panel jackknife (κ = 1/3) or simulation
      (mean bootstrap replicate minus the estimate).
    - Intervals are percentile-t: the (B+1)-rule quantile of
      ``|β̂_r - β̂| / se_r`` scales the asymptotic standard error.

    References
    ----------
    .. [1] Chudik, A., Pesaran, M. H., & Smith, R. P. (2023). Pooled Bewley
           estimator of long-run relationships in dynamic heterogenous
           panels. Econometrics and Statistics.
    .. [2] Bewley, R. A. (1979). The direct estimation of the equilibrium
           response in a linear dynamic model. Economics Letters, 3(4).

    """

    def __init__(  # noqa: PLR0913
        self,
        y: ArrayLike,
        X: MatrixLike,
        unit_ids: ArrayLike | Sequence[Any],
        time_ids: ArrayLike | Sequence[Any],
        *,
        var_names: Sequence[str] | None = None,
        y_name: str | None = None,
    ) -> None:
        if var_names is None and isinstance(X, pd.DataFrame):
            var_names = [str(c) for c in X.columns]
        if y_name is None and isinstance(y, pd.Series) and y.name is not None:
            y_name = str(y.name)
        self._index = y.index if isinstance(y, (pd.Series, pd.DataFrame)) else None
        self.y_orig = np.asarray(y, dtype=np.float64).reshape(-1)
        X_arr = np.asarray(X, dtype=np.float64)
        self.X_orig = X_arr.reshape(-1, 1) if X_arr.ndim == 1 else X_arr
        self.unit_ids = np.asarray(unit_ids).reshape(-1)
        self.time_ids = np.asarray(time_ids).reshape(-1)
        n = self.y_orig.shape[0]
        if self.X_orig.shape[0] != n or self.unit_ids.shape[0] != n or self.time_ids.shape[0] != n:
            raise ValueError("y, X, unit_ids and time_ids must have the same number of rows.")
        if var_names is None:
            var_names = [f"x{j}" for j in range(self.X_orig.shape[1])]
        self._var_names = [str(v) for v in var_names]
        self.y_name = y_name or "y"
        self._results: EstimationResult | None = None

    @classmethod
    def from_formula(
        cls,
        formula: str,
        data: pd.DataFrame,
        *,
        id: str,  # noqa: A002 - keep API name consistent with the formula front end
        time: str,
    ) -> PooledBewley:
        """Build the model from ``"y ~ x1 + x2"`` and the id/time columns of ``data``."""
        parsed = FormulaParser(data, id_name=id, t_name=time).parse(formula)
        model = cls(
            parsed["y"],
            parsed["X"],
            parsed["ids"],
            parsed["times"],
            var_names=parsed["var_names"],
            y_name=parsed["y_name"],
        )
        model._index = parsed["row_index"]
        return model

    # -------------------- configuration --------------------
    @staticmethod
    def _resolve_config(config: PBConfig | None, overrides: dict[str, Any]) -> PBConfig:
        cfg = config if config is not None else PBConfig()
        if not overrides:
            return cfg
        known = {f.name for f in dataclasses.fields(PBConfig)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(unknown[0], f"unknown option; allowed: {sorted(known)}")
        return dataclasses.replace(cfg, **overrides)

    def panel(self, lag_order: int = 1) -> Panel:
        """Time-ordered panel of the estimation sample."""
        return build_panel(
            self.y_orig,
            self.X_orig,
            self.unit_ids,
            self.time_ids,
            lag_order=lag_order,
            var_names=self._var_names,
        )

    # -------------------- estimation --------------------
    def fit(self, config: PBConfig | None = None, **overrides: Any) -> EstimationResult:
        """Estimate the long-run coefficient.

        Accepts a :class:`PBConfig` and/or keyword overrides of its fields,
        e.g. ``fit(lag_order=2, bias_correction="jackknife", bootstrap_ci=True)``.
        """
        cfg = self._resolve_config(config, overrides)
        p = cfg.lag_order
        panel = self.panel(p)
        names = pd.Index(panel.var_names)

        full = pbestim(panel, p)
        beta = full.beta
        omega = compute_omega(full)
        extra: dict[str, Any] = {
            "beta_uncorrected": pd.Series(beta, index=names),
            "cov_uncorrected": pd.DataFrame(omega, index=names, columns=names),
            "A": full.A,
        }
        variant = "uncorrected"
        beta_rep, omega_rep = beta, omega

        jk = None
        if cfg.bias_correction is BiasCorrection.JACKKNIFE:
            jk = pbestim_jackknife(panel, p, full=full)
            beta_rep, omega_rep = jk.beta, compute_omegajk(jk)
            variant = "jackknife"
            extra["beta_first_half"] = pd.Series(jk.first.beta, index=names)
            extra["beta_second_half"] = pd.Series(jk.second.beta, index=names)

        reps: dict[str, ReplicateSet] = {}
        if cfg.needs_bootstrap:
            reps["uncorrected"] = pbsimul(
                panel, cfg, beta, variant="uncorrected", y_name=self.y_name,
            )
        if cfg.bias_correction is BiasCorrection.BOOTSTRAP:
            bias = reps["uncorrected"].betas.mean(axis=1) - beta
            beta_rep = beta - bias
            omega_rep = compute_omega(full, beta_rep)
            variant = "bias-corrected"
            extra["bias"] = pd.Series(bias, index=names)
            if cfg.bootstrap_ci:
                reps["bias-corrected"] = pbsimul(
                    panel, cfg, beta_rep, variant="bias-corrected", shift=bias,
                    y_name=self.y_name,
                )
        if jk is not None and cfg.bootstrap_ci:
            reps["jackknife"] = pbsimul(
                panel, cfg, jk.beta, variant="jackknife", y_name=self.y_name,
            )

        centers = {
            "uncorrected": (beta, omega),
            variant: (beta_rep, omega_rep),
        }
        intervals: dict[str, ConfidenceInterval] = {}
        if cfg.bootstrap_ci:
            for key, rs in reps.items():
                theta, cov = centers[key]
                bounds, crit = bt.symmetric_interval(theta, cov, rs.t_stats, cfg.confidence_level)
                intervals[key] = ConfidenceInterval(
                    variant=key,
                    level=cfg.confidence_level,
                    bounds=pd.DataFrame(bounds, index=names, columns=["lower", "upper"]),
                    critical_values=pd.Series(crit, index=names, name="crit"),
                    n_boot=rs.n_boot,
                )
        if reps:
            extra["boot_betas"] = {key: rs.betas for key, rs in reps.items()}
            extra["boot_t"] = {key: rs.t_stats for key, rs in reps.items()}
            extra["boot_se"] = {
                key: pd.Series(bt.bootstrap_se(rs.betas), index=names) for key, rs in reps.items()
            }

        if cfg.full_output:
            sr = sr_param_est(panel, p, beta_rep, y_name=self.y_name)
            extra["short_run"] = unit_table(sr, panel)

        sample = sample_diagnostics(panel)
        sample["n_rows_used"] = int(panel.n_obs - panel.N * p)
        model_info = {
            "Estimator": "Pooled Bewley",
            "Variant": variant,
            "DepVar": self.y_name,
            "LagOrder": p,
            "BiasCorrection": cfg.bias_correction.value,
            "N": panel.N,
        }
        if cfg.needs_bootstrap:
            model_info.update(
                {
                    "BootstrapReps": cfg.bootstrap_reps,
                    "ResidualMode": cfg.residual_mode.value,
                    "RegressorDynamics": cfg.regressor_dynamics.value,
                    "RegressorLagOrder": cfg.px,
                    "Seed": cfg.random_seed,
                },
            )
        if cfg.bootstrap_ci:
            model_info["ConfidenceLevel"] = cfg.confidence_level

        res = EstimationResult(
            params=pd.Series(beta_rep, index=names, name="coef"),
            cov=pd.DataFrame(la.symmetrize(omega_rep), index=names, columns=names),
            n_obs=panel.n_obs,
            sample=sample,
            config=cfg,
            intervals=intervals,
            model_info=model_info,
            extra=extra,
        )
        self._results = res
        return res

    # -------------------- post-estimation --------------------
    @property
    def results(self) -> EstimationResult:
        if self._results is None:
            raise AttributeError("Model has not been fitted yet.")
        return self._results

    def auxiliary_series(
        self,
        beta: NDArray[np.float64] | pd.Series | None = None,
        *,
        lag_order: int | None = None,
    ) -> pd.DataFrame:
        """Per-observation long-run gap and short-run residual.

        ``ec`` is ``y - x β'`` demeaned within each unit; ``resid`` is the
        residual of the unit's error-correction regression at ``β``, NaN for
        the first ``lag_order`` observations of each unit. Rows follow the
        input order.
        """
        if beta is None or lag_order is None:
            res = self.results
            beta = res.params.to_numpy() if beta is None else beta
            lag_order = res.config.lag_order if lag_order is None else lag_order
        b = np.asarray(beta, dtype=np.float64).reshape(-1)
        panel = self.panel(lag_order)
        sr = sr_param_est(panel, lag_order, b, y_name=self.y_name)
        n = self.y_orig.shape[0]
        ec = np.full(n, np.nan)
        resid = np.full(n, np.nan)
        offsets = panel.offsets
        for i, u in enumerate(panel.units):
            gap = u.y - u.X @ b
            ec[u.rows] = gap - gap.mean()
            r_i = sr.util[int(offsets[i]):int(offsets[i + 1])].copy()
            r_i[:lag_order] = np.nan
            resid[u.rows] = r_i
        index = self._index if self._index is not None else pd.RangeIndex(n)
        return pd.DataFrame({"ec": ec, "resid": resid}, index=index)
