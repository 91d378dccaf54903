"""Short-run dynamics per unit, estimated at a given long-run coefficient.

For each unit the error-correction regression

    Δy_t = c + φ ê_{t-1} + Σ_{l=0}^{p-1} γ_l' Δx_{t-l} + Σ_{l=1}^{p-1} λ_l Δy_{t-l} + u_t,
    ê_{t-1} = y_{t-1} - x_{t-1} β̂',

is fitted by OLS on t = p..T-1 (0-based). When the regressors are to be
simulated, a VAR in first differences of order ``px`` (optionally with
lagged Δy) is fitted on t = px+1..T-1. Residuals are stored in the stacked
unit-major layout of the panel, zero where no lag is available.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from . import linalg as la
from .errors import SingularMatrixError
from .options import RegressorDynamics

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .panel import Panel

LOGGER = logging.getLogger(__name__)

__all__ = [
    "ShortRunFit",
    "ecm_design",
    "ecm_names",
    "ols_fit",
    "sr_param_est",
    "unit_table",
    "var_design",
]


@dataclass(frozen=True)
class ShortRunFit:
    """Per-unit short-run coefficients and residual pools.

    ``G`` is (N, m) with columns named by ``names``; ``util`` is the stacked
    (n_obs,) ECM residual. ``Gx`` holds one (m_x, k) coefficient matrix per
    unit and ``utilx`` the stacked (n_obs, k) VAR residuals; both are None
    under fixed regressors.
    """

    p: int
    px: int
    dynamics: RegressorDynamics
    beta: NDArray[np.float64]
    names: tuple[str, ...]
    G: NDArray[np.float64]
    G_se: NDArray[np.float64]
    r2: NDArray[np.float64]
    util: NDArray[np.float64]
    Gx: tuple[NDArray[np.float64], ...] | None
    utilx: NDArray[np.float64] | None


def ecm_names(
    var_names: tuple[str, ...] | list[str], p: int, y_name: str = "y",
) -> tuple[str, ...]:
    names = ["_cons", "ec"]
    for l in range(p):
        prefix = "D." if l == 0 else f"L{l}D."
        names += [prefix + v for v in var_names]
    names += [f"L{l}D.{y_name}" for l in range(1, p)]
    return tuple(names)


def ecm_design(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    p: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return ``(Δy_t, Z)`` over rows t = p..T-1, columns ordered as ``ecm_names``."""
    T = y.shape[0]
    t = np.arange(p, T)
    dy = np.diff(y, prepend=np.nan)
    dX = np.diff(X, axis=0, prepend=np.full((1, X.shape[1]), np.nan))
    ec = y - X @ beta
    cols = [np.ones((t.shape[0], 1)), ec[t - 1].reshape(-1, 1)]
    cols += [dX[t - l] for l in range(p)]
    cols += [dy[t - l].reshape(-1, 1) for l in range(1, p)]
    return dy[t], np.hstack(cols)


def var_design(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    px: int,
    *,
    with_y: bool,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return ``(Δx_t, Z)`` over rows t = px+1..T-1 for the regressor VAR."""
    T = y.shape[0]
    t = np.arange(px + 1, T)
    dy = np.diff(y, prepend=np.nan)
    dX = np.diff(X, axis=0, prepend=np.full((1, X.shape[1]), np.nan))
    cols = [np.ones((t.shape[0], 1))]
    cols += [dX[t - l] for l in range(1, px + 1)]
    if with_y:
        cols += [dy[t - l].reshape(-1, 1) for l in range(1, px + 1)]
    return dX[t], np.hstack(cols)


def ols_fit(
    Z: NDArray[np.float64], Y: NDArray[np.float64], *, what: str = "design matrix",
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """OLS via normal equations: coefficients, residuals, standard errors, R².

    ``Y`` may hold several equations as columns; ``se`` and ``r2`` then
    have one entry per equation.
    """
    n, m = Z.shape
    if n <= m:
        raise SingularMatrixError(f"{what} has {n} rows for {m} parameters")
    coef = la.solve_normal_eq(Z, Y, what=what)
    resid = Y - Z @ coef
    ZZinv = la.sym_inv(la.crossprod(Z), what=f"{what} cross-product")
    s2 = np.sum(np.atleast_2d(resid.T).T ** 2, axis=0) / (n - m)
    se = np.sqrt(np.outer(np.diag(ZZinv), s2))
    Yc = Y - Y.mean(axis=0)
    tss = np.sum(np.atleast_2d(Yc.T).T ** 2, axis=0)
    rss = np.sum(np.atleast_2d(resid.T).T ** 2, axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        r2 = np.where(tss > 0, 1.0 - rss / tss, np.nan)
    if Y.ndim == 1:
        se = se[:, 0]
        r2 = r2[0]
    return coef, resid, se, r2


def sr_param_est(
    panel: Panel,
    p: int,
    beta: NDArray[np.float64],
    *,
    dynamics: RegressorDynamics = RegressorDynamics.FIXED,
    px: int | None = None,
    y_name: str = "y",
) -> ShortRunFit:
    """Fit the short-run ECM (and the regressor VAR if needed) for every unit."""
    px = p if px is None else int(px)
    b = np.asarray(beta, dtype=np.float64).reshape(-1)
    names = ecm_names(panel.var_names, p, y_name)
    offsets = panel.offsets
    G = np.empty((panel.N, len(names)), dtype=np.float64)
    G_se = np.empty_like(G)
    r2 = np.empty(panel.N, dtype=np.float64)
    util = np.zeros(panel.n_obs, dtype=np.float64)
    Gx: list[NDArray[np.float64]] | None = [] if dynamics.simulates_x else None
    utilx = np.zeros((panel.n_obs, panel.k), dtype=np.float64) if dynamics.simulates_x else None

    for i, u in enumerate(panel.units):
        start = int(offsets[i])
        try:
            dy_t, Z = ecm_design(u.y, u.X, b, p)
            coef, resid, se, r2_i = ols_fit(Z, dy_t, what="short-run ECM design")
            G[i], G_se[i], r2[i] = coef, se, r2_i
            util[start + p:start + u.n_obs] = resid
            if Gx is not None and utilx is not None:
                if u.n_obs < px + 2:
                    raise SingularMatrixError(
                        f"{u.n_obs} observations leave no rows for a VAR of order {px}",
                    )
                dX_t, Zx = var_design(
                    u.y, u.X, px, with_y=dynamics is RegressorDynamics.VAR_XY,
                )
                cx, rx, _se, _r2 = ols_fit(Zx, dX_t, what="regressor VAR design")
                Gx.append(cx)
                utilx[start + px + 1:start + u.n_obs] = rx
        except SingularMatrixError as exc:
            raise exc.located(unit=u.uid) from exc

    LOGGER.debug(
        "Short-run fit: N=%d, p=%d, px=%d, dynamics=%s", panel.N, p, px, dynamics.value,
    )
    return ShortRunFit(
        p=p,
        px=px,
        dynamics=dynamics,
        beta=b,
        names=names,
        G=G,
        G_se=G_se,
        r2=r2,
        util=util,
        Gx=None if Gx is None else tuple(Gx),
        utilx=utilx,
    )


def unit_table(fit: ShortRunFit, panel: Panel) -> pd.DataFrame:
    """Per-unit short-run coefficients, standard errors and R², indexed by unit."""
    ids = pd.Index([u.uid for u in panel.units], name="unit")
    coef = pd.DataFrame(fit.G, index=ids, columns=list(fit.names))
    se = pd.DataFrame(fit.G_se, index=ids, columns=[f"se({n})" for n in fit.names])
    out = pd.concat([coef, se], axis=1)
    out["R2"] = fit.r2
    out["T"] = [u.n_obs for u in panel.units]
    return out
