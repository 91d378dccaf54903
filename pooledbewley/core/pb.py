"""Pooled Bewley point estimator, sandwich covariance and half-panel jackknife.

The estimator pools the per-unit annihilated moments

    A = Σ_i X̃_i' M_i X̃_i,    B = Σ_i X̃_i' M_i ỹ_i,    β̂' = A^{-1} B

and the covariance is the sandwich ``Ā^{-1} Ω_v Ā^{-1} / N`` with
``Ā = A/N`` and ``Ω_v = N^{-1} Σ_i W_i W_i'``, where
``W_i = X̃_i' M_i V_i`` and ``V_i = M_i (ỹ_i - X̃_i β̂')``.
Accumulation runs over units in panel order, so results are reproducible
bit for bit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from . import linalg as la
from .annihilator import UnitBlocks, unit_blocks
from .errors import SingularMatrixError
from .panel import HalfSample

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .panel import Panel

LOGGER = logging.getLogger(__name__)

# Jackknife weight on the half-sample bias estimate.
KAPPA: float = 1.0 / 3.0

__all__ = [
    "KAPPA",
    "JackknifeFit",
    "PBFit",
    "compute_omega",
    "compute_omegajk",
    "jackknife_combine",
    "pbestim",
    "pbestim_jackknife",
    "unit_scores",
]


@dataclass(frozen=True)
class PBFit:
    """Pooled moments and the coefficient solved from them."""

    beta: NDArray[np.float64]
    A: NDArray[np.float64]
    B: NDArray[np.float64]
    blocks: tuple[UnitBlocks, ...]
    half: HalfSample

    @property
    def N(self) -> int:
        return len(self.blocks)


@dataclass(frozen=True)
class JackknifeFit:
    """Full-sample and half-sample fits with the combined estimate."""

    beta: NDArray[np.float64]
    full: PBFit
    first: PBFit
    second: PBFit


def pbestim(panel: Panel, p: int, half: HalfSample = HalfSample.FULL) -> PBFit:
    """Pooled Bewley estimate on the full sample or on one half sample."""
    k = panel.k
    A = np.zeros((k, k), dtype=np.float64)
    B = np.zeros(k, dtype=np.float64)
    blocks = []
    for unit in panel.units:
        blk = unit_blocks(unit, p, half)
        MX = blk.M @ blk.Xt
        A += blk.Xt.T @ MX
        B += MX.T @ blk.yt
        blocks.append(blk)
    A = la.symmetrize(A)
    try:
        beta = la.chol_solve(A, B, what="pooled moment matrix A")
    except SingularMatrixError as exc:
        raise exc.located(half=half.value) from exc
    LOGGER.debug("pbestim(%s): N=%d, beta=%s", half.value, panel.N, beta)
    return PBFit(beta=beta, A=A, B=B, blocks=tuple(blocks), half=half)


def unit_scores(fit: PBFit, beta: NDArray[np.float64]) -> NDArray[np.float64]:
    """Per-unit scores W_i stacked as an (N, k) array."""
    b = np.asarray(beta, dtype=np.float64).reshape(-1)
    W = np.empty((fit.N, b.shape[0]), dtype=np.float64)
    for i, blk in enumerate(fit.blocks):
        V = blk.M @ (blk.yt - blk.Xt @ b)
        W[i] = blk.Xt.T @ (blk.M @ V)
    return W


def _sandwich(A: NDArray[np.float64], W: NDArray[np.float64]) -> NDArray[np.float64]:
    N = W.shape[0]
    A_bar = A / N
    omega_v = (W.T @ W) / N
    A_inv = la.sym_inv(A_bar, what="pooled moment matrix A")
    return la.symmetrize(A_inv @ omega_v @ A_inv / N)


def compute_omega(fit: PBFit, beta: NDArray[np.float64] | None = None) -> NDArray[np.float64]:
    """Asymptotic covariance of the pooled estimator.

    ``fit`` supplies ``A`` and the annihilators of the sample; the scores
    are evaluated at ``beta`` (``fit.beta`` when omitted).
    """
    b = fit.beta if beta is None else beta
    return _sandwich(fit.A, unit_scores(fit, b))


def jackknife_combine(
    b_full: NDArray[np.float64],
    b_first: NDArray[np.float64],
    b_second: NDArray[np.float64],
    *,
    kappa: float = KAPPA,
) -> NDArray[np.float64]:
    """β̂ - κ((β̂_first + β̂_second)/2 - β̂)."""
    b_full = np.asarray(b_full, dtype=np.float64)
    mean_half = 0.5 * (np.asarray(b_first) + np.asarray(b_second))
    return b_full - kappa * (mean_half - b_full)


def pbestim_jackknife(panel: Panel, p: int, full: PBFit | None = None) -> JackknifeFit:
    """Half-panel jackknife bias-corrected estimate.

    ``full`` may carry an already computed full-sample fit.
    """
    if full is None:
        full = pbestim(panel, p, HalfSample.FULL)
    first = pbestim(panel, p, HalfSample.FIRST)
    second = pbestim(panel, p, HalfSample.SECOND)
    beta = jackknife_combine(full.beta, first.beta, second.beta)
    return JackknifeFit(beta=beta, full=full, first=first, second=second)


def compute_omegajk(
    jk: JackknifeFit,
    beta: NDArray[np.float64] | None = None,
    *,
    kappa: float = KAPPA,
) -> NDArray[np.float64]:
    """Covariance of the jackknife estimator.

    Per-unit scores are combined as
    ``(1+κ) W_full - 2κ (W_first + W_second)`` before aggregation.
    """
    b = jk.beta if beta is None else beta
    W = (1.0 + kappa) * unit_scores(jk.full, b) - 2.0 * kappa * (
        unit_scores(jk.first, b) + unit_scores(jk.second, b)
    )
    return _sandwich(jk.full.A, W)
