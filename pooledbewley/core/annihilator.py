"""Per-unit annihilator for the Bewley-transformed long-run regression.

For unit i with lag order p the Bewley transform of an ARDL(p, p) reads

    y_t = a_i + x_t θ + Σ_{l<p} δ_l Δy_{t-l} + Σ_{l<p} ψ_l Δx_{t-l} + v_t.

``Δy_t`` is endogenous; the level block
``Q = [y_{t-1..t-p}, x_t, x_{t-1..t-p}]`` instruments the system exactly.
With ``P`` the projection on the time-demeaned ``Q`` and
``D = [Δy_{t..t-p+1}, Δx_{t..t-p+1}]`` the short-run block,

    M = P - P D (D' P D)^{-1} D' P

removes the intercept and the short-run nuisance terms, leaving the
long-run moment ``X̃' M (ỹ - X̃ θ)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from . import linalg as la
from .errors import SingularMatrixError
from .panel import HalfSample

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .panel import Unit

__all__ = ["UnitBlocks", "bewley_stacks", "crm", "unit_blocks"]


@dataclass(frozen=True)
class UnitBlocks:
    """Demeaned, lag-aligned level stacks and the annihilator of one unit."""

    yt: NDArray[np.float64]
    Xt: NDArray[np.float64]
    M: NDArray[np.float64]

    @property
    def n_rows(self) -> int:
        return int(self.yt.shape[0])


def bewley_stacks(
    y: NDArray[np.float64], X: NDArray[np.float64], p: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Return ``(y_t, X_t, Q, D)`` over rows t = p..T-1 (0-based)."""
    y = np.asarray(y, dtype=np.float64).reshape(-1)
    X = np.asarray(X, dtype=np.float64)
    T = y.shape[0]
    t = np.arange(p, T)
    dy = np.diff(y, prepend=np.nan)
    dX = np.diff(X, axis=0, prepend=np.full((1, X.shape[1]), np.nan))

    q_cols = [y[t - l].reshape(-1, 1) for l in range(1, p + 1)]
    q_cols += [X[t - l] for l in range(p + 1)]
    d_cols = [dy[t - l].reshape(-1, 1) for l in range(p)]
    d_cols += [dX[t - l] for l in range(p)]
    return y[t], X[t], np.hstack(q_cols), np.hstack(d_cols)


def crm(
    y: NDArray[np.float64], X: NDArray[np.float64], p: int,
) -> UnitBlocks:
    """Build demeaned stacks and the (T-p)x(T-p) annihilator for one series."""
    yl, Xl, Q, D = bewley_stacks(y, X, p)
    Qd = Q - Q.mean(axis=0)
    # P = Qd (Qd'Qd)^{-1} Qd'
    P = Qd @ la.chol_solve(la.crossprod(Qd), Qd.T, what="long-block cross-product")
    P = la.symmetrize(P)
    PD = P @ D
    M = P - PD @ la.chol_solve(D.T @ PD, PD.T, what="D'PD")
    return UnitBlocks(
        yt=yl - yl.mean(),
        Xt=Xl - Xl.mean(axis=0),
        M=la.symmetrize(M),
    )


def unit_blocks(unit: Unit, p: int, half: HalfSample = HalfSample.FULL) -> UnitBlocks:
    """Annihilator blocks of ``unit`` on the selected sample."""
    u = unit.half(half, p)
    try:
        return crm(u.y, u.X, p)
    except SingularMatrixError as exc:
        raise exc.located(unit=unit.uid, half=half.value) from exc
