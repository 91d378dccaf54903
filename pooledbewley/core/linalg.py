"""Linear algebra routines for pooled Bewley estimation.

This module provides the strict SPD solvers used by the annihilator,
moment and short-run regressions. Positive definiteness is checked on an
equilibrated Cholesky factor; there are no implicit ridges and no
pseudo-inverse fallbacks, so rank problems surface as
``SingularMatrixError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import scipy.linalg as sla

from .errors import SingularMatrixError

if TYPE_CHECKING:
    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

# Matrix type alias
Matrix = Any

# Reciprocal condition threshold on the equilibrated Cholesky factor.
RCOND_TOL: float = 1e-13

__all__ = [
    "RCOND_TOL",
    "chol_factor",
    "chol_solve",
    "crossprod",
    "finite_sample_quantile_bplus1",
    "is_psd",
    "is_spd",
    "solve_normal_eq",
    "sym_inv",
    "symmetrize",
]


def finite_sample_quantile_bplus1(x: NDArray[np.float64], q: float) -> float:
    """Compute (B+1) rule quantile for bootstrap statistics."""
    xa = np.asarray(x, dtype=np.float64)
    xa = xa[np.isfinite(xa)]
    if xa.size == 0:
        return float("nan")
    xa.sort()
    B = xa.size
    k = int(np.ceil((B + 1) * float(q)))
    k = max(1, min(k, B))
    return float(xa[k - 1])


def _assert_all_finite(*arrays: NDArray[np.float64]) -> None:
    """Raise ValueError if any input contains NaN or Inf."""
    for a in arrays:
        if a is None:
            continue
        ad = np.asarray(a)
        if not np.all(np.isfinite(ad)):
            raise ValueError(
                "Input contains NA/NaN/Inf; please drop/clean rows before estimation.",
            )


def symmetrize(A: Matrix) -> NDArray[np.float64]:
    Ad = np.asarray(A, dtype=np.float64)
    return (Ad + Ad.T) * 0.5


def crossprod(X: Matrix, y: Matrix | None = None) -> NDArray[np.float64]:
    """Return X'X (or X'y when ``y`` is supplied) as float64."""
    Xd = np.asarray(X, dtype=np.float64)
    if y is None:
        return symmetrize(Xd.T @ Xd)
    return np.asarray(Xd.T @ np.asarray(y, dtype=np.float64), dtype=np.float64)


def chol_factor(A: Matrix, *, what: str = "matrix") -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Equilibrated Cholesky factorization of a symmetric matrix.

    Returns ``(c, s)`` where ``c`` is the lower factor of ``S A S`` with
    ``S = diag(s)``. Raises ``SingularMatrixError`` when ``A`` is not
    positive definite within ``RCOND_TOL``.
    """
    Ad = symmetrize(A)
    if Ad.ndim != 2 or Ad.shape[0] != Ad.shape[1]:
        raise ValueError(f"{what} must be square; got shape {Ad.shape}.")
    if Ad.shape[0] == 0:
        raise SingularMatrixError(f"{what} is empty")
    _assert_all_finite(Ad)
    d = np.diag(Ad)
    if np.any(d <= 0.0):
        raise SingularMatrixError(f"{what} is not positive definite (non-positive diagonal)")
    s = 1.0 / np.sqrt(d)
    As = Ad * s[:, None] * s[None, :]
    try:
        c = sla.cholesky(As, lower=True, check_finite=False)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError(f"{what} is not positive definite: {exc}") from exc
    piv = np.abs(np.diag(c))
    if float(np.min(piv)) ** 2 < RCOND_TOL * float(np.max(piv)) ** 2:
        raise SingularMatrixError(f"{what} is numerically singular")
    return c, s


def chol_solve(A: Matrix, B: Matrix, *, what: str = "matrix") -> NDArray[np.float64]:
    """Solve ``A X = B`` for symmetric positive definite ``A``."""
    c, s = chol_factor(A, what=what)
    Bd = np.asarray(B, dtype=np.float64)
    vec = Bd.ndim == 1
    if vec:
        Bd = Bd.reshape(-1, 1)
    Z = sla.cho_solve((c, True), Bd * s[:, None], check_finite=False)
    X = Z * s[:, None]
    return X.reshape(-1) if vec else X


def sym_inv(A: Matrix, *, what: str = "matrix") -> NDArray[np.float64]:
    """Inverse of an SPD matrix through its Cholesky factor."""
    n = np.asarray(A).shape[0]
    return symmetrize(chol_solve(A, np.eye(n), what=what))


def is_spd(A: Matrix) -> bool:
    try:
        chol_factor(A)
    except SingularMatrixError:
        return False
    return True


def is_psd(A: Matrix, *, tol: float = 1e-10) -> bool:
    """Check symmetry and non-negative spectrum up to a relative tolerance."""
    Ad = np.asarray(A, dtype=np.float64)
    if not np.allclose(Ad, Ad.T, rtol=1e-10, atol=1e-14):
        return False
    e = np.linalg.eigvalsh(symmetrize(Ad))
    scale = max(1.0, float(np.max(np.abs(e)))) if e.size else 1.0
    return bool(np.all(e >= -tol * scale))


def solve_normal_eq(
    X: Matrix, y: Matrix, *, what: str = "design matrix",
) -> NDArray[np.float64]:
    """Solve (X'X) b = X'y through the Cholesky factor of X'X.

    Rank-deficient designs raise ``SingularMatrixError``; nothing is
    dropped silently.
    """
    Xd = np.asarray(X, dtype=np.float64)
    yd = np.asarray(y, dtype=np.float64)
    _assert_all_finite(Xd, yd)
    if Xd.shape[0] < Xd.shape[1]:
        raise SingularMatrixError(
            f"{what} has {Xd.shape[0]} rows for {Xd.shape[1]} parameters",
        )
    return chol_solve(crossprod(Xd), crossprod(Xd, yd), what=f"{what} cross-product")
