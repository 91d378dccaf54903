"""Synthetic panel generation for the pooled Bewley bootstrap.

Each replicate multiplies the stored short-run residuals by wild
multipliers and regenerates every unit recursively: first the regressors
(from the VAR in differences, unless they are held fixed), then the
dependent variable from the error-correction equation. The recursion is
seeded with the observed initial values, so with all multipliers equal to
one the observed panel is reproduced exactly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from . import bootstrap as bt
from .options import RegressorDynamics, ResidualMode

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .panel import Panel
    from .shortrun import ShortRunFit

__all__ = ["draw_multipliers", "gen_simulated_data", "simulate_unit"]


def draw_multipliers(
    panel: Panel,
    mode: ResidualMode,
    *,
    rng: np.random.Generator,
    dist: bt.WildDist | str = "rademacher",
) -> NDArray[np.float64]:
    """One multiplier per stacked observation.

    Independent mode draws per (unit, period) cell; linked mode draws once
    per distinct period and shares the draw across all units observed then.
    """
    if mode is ResidualMode.CROSS_SECTIONAL_LINKED:
        return bt.period_multipliers(
            panel.stacked_period_codes(), panel.n_periods, rng=rng, dist=dist,
        )
    return bt.wild_multipliers(panel.n_obs, rng=rng, dist=dist)


def _unpack_ecm(g: NDArray[np.float64], p: int, k: int):
    c, phi = g[0], g[1]
    gam = g[2:2 + p * k].reshape(p, k)
    lam = g[2 + p * k:]
    return c, phi, gam, lam


def _unpack_var(gx: NDArray[np.float64], px: int, k: int, with_y: bool):
    cx = gx[0]
    Phi = [gx[1 + l * k:1 + (l + 1) * k] for l in range(px)]
    Pi = [gx[1 + px * k + l] for l in range(px)] if with_y else []
    return cx, Phi, Pi


def simulate_unit(  # noqa: PLR0913
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    g: NDArray[np.float64],
    uy: NDArray[np.float64],
    *,
    p: int,
    gx: NDArray[np.float64] | None = None,
    ux: NDArray[np.float64] | None = None,
    px: int | None = None,
    with_y: bool = False,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Regenerate one unit's (y, X) path from its short-run parameters and shocks."""
    T, k = X.shape
    ys = np.array(y, dtype=np.float64, copy=True)
    Xs = np.array(X, dtype=np.float64, copy=True)
    c, phi, gam, lam = _unpack_ecm(g, p, k)
    sim_x = gx is not None
    if sim_x:
        if ux is None or px is None:
            raise ValueError("simulate_unit: ux and px are required with VAR coefficients.")
        cx, Phi, Pi = _unpack_var(gx, px, k, with_y)

    for t in range(1, T):
        if sim_x and t >= px + 1:
            dx = cx + ux[t]
            for l in range(1, px + 1):
                dx = dx + (Xs[t - l] - Xs[t - l - 1]) @ Phi[l - 1]
                if with_y:
                    dx = dx + (ys[t - l] - ys[t - l - 1]) * Pi[l - 1]
            Xs[t] = Xs[t - 1] + dx
        if t >= p:
            dy = c + phi * (ys[t - 1] - Xs[t - 1] @ beta) + uy[t]
            for l in range(p):
                dy += (Xs[t - l] - Xs[t - l - 1]) @ gam[l]
            for l in range(1, p):
                dy += lam[l - 1] * (ys[t - l] - ys[t - l - 1])
            ys[t] = ys[t - 1] + dy
    return ys, Xs


def gen_simulated_data(
    panel: Panel,
    sr: ShortRunFit,
    *,
    residual_mode: ResidualMode = ResidualMode.INDEPENDENT,
    rng: np.random.Generator | None = None,
    dist: bt.WildDist | str = "rademacher",
    multipliers: NDArray[np.float64] | None = None,
) -> Panel:
    """Generate one synthetic panel replicate.

    ``multipliers`` overrides the random draw (one value per stacked
    observation); otherwise they are drawn from ``rng``.
    """
    if multipliers is None:
        if rng is None:
            raise ValueError("gen_simulated_data: provide rng or multipliers.")
        eta = draw_multipliers(panel, residual_mode, rng=rng, dist=dist)
    else:
        eta = np.asarray(multipliers, dtype=np.float64).reshape(-1)
        if eta.shape[0] != panel.n_obs:
            raise ValueError(f"multipliers must have length {panel.n_obs}.")

    uy_all = sr.util * eta
    ux_all = None if sr.utilx is None else sr.utilx * eta[:, None]
    with_y = sr.dynamics is RegressorDynamics.VAR_XY
    offsets = panel.offsets
    ys, Xs = [], []
    for i, u in enumerate(panel.units):
        sl = slice(int(offsets[i]), int(offsets[i + 1]))
        y_new, X_new = simulate_unit(
            u.y,
            u.X,
            sr.beta,
            sr.G[i],
            uy_all[sl],
            p=sr.p,
            gx=None if sr.Gx is None else sr.Gx[i],
            ux=None if ux_all is None else ux_all[sl],
            px=sr.px,
            with_y=with_y,
        )
        ys.append(y_new)
        Xs.append(X_new)
    return panel.with_data(ys, Xs)
