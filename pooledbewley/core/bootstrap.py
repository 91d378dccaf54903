"""Wild multipliers and studentized bootstrap inference.

This module implements the resampling primitives used by the pooled Bewley
bootstrap: wild multipliers drawn per observation or per time period,
reproducible per-replication random streams, and percentile-t intervals
built from studentized replicate deviations.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING

import numpy as np

from . import linalg as la

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

# Default bootstrap replications
DEFAULT_BOOTSTRAP_ITERATIONS: int = 2000

# Stream keys keep the replication loops of one fit on disjoint sub-streams.
STREAM_KEYS: dict[str, int] = {
    "uncorrected": 0,
    "bias-corrected": 1,
    "jackknife": 2,
}

__all__ = [
    "DEFAULT_BOOTSTRAP_ITERATIONS",
    "STREAM_KEYS",
    "WildDist",
    "bootstrap_se",
    "finite_sample_quantile",
    "period_multipliers",
    "replication_rngs",
    "studentized_deviation",
    "symmetric_interval",
    "wild_multipliers",
]


# ---------------------------------------------------------------------
# Wild multipliers
# ---------------------------------------------------------------------


class WildDist:
    """Wild multiplier distribution (mean 0, variance 1).

    Supported distributions
    -----------------------
    rademacher / rad
        Two-point {-1,+1} with equal probability. This is the default and
        the scheme the pooled Bewley bootstrap is calibrated for.
    mammen
        Two-point distribution with golden-ratio support ensuring mean 0 and
        variance 1.
    webb
        Six-point distribution {±sqrt(3/2), ±1, ±1/sqrt(2)} each with
        probability 1/6.
    normal
        Standard normal draws.
    """

    _ALLOWED_DISTS = frozenset({
        "rademacher",
        "rad",
        "mammen",
        "webb",
        "normal",
        "gaussian",
    })

    def __init__(self, name: str = "rademacher") -> None:
        self.name = str(name).lower().strip()
        if self.name not in self._ALLOWED_DISTS:
            msg = f"Unknown wild distribution: '{self.name}'. Allowed: {sorted(self._ALLOWED_DISTS)}"
            raise ValueError(msg)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"WildDist({self.name!r})"

    def draw(self, size: int | tuple[int, ...], *, rng: np.random.Generator) -> NDArray[np.float64]:
        """Draw multipliers of the given shape from ``rng``."""
        if self.name in {"rademacher", "rad"}:
            return rng.choice(np.array([-1.0, 1.0]), size=size).astype(np.float64, copy=False)
        if self.name == "webb":
            vals = np.array(
                [
                    -1.22474487139158904909,  # -sqrt(3/2)
                    -1.0,
                    -0.70710678118654752440,  # -1/sqrt(2)
                    +0.70710678118654752440,
                    +1.0,
                    +1.22474487139158904909,
                ],
                dtype=np.float64,
            )
            return rng.choice(vals, size=size).astype(np.float64, copy=False)
        if self.name in {"normal", "gaussian"}:
            return rng.standard_normal(size=size).astype(np.float64, copy=False)
        # Mammen two-point (mean 0, var 1)
        s5 = np.sqrt(5.0)
        a = (1.0 - s5) / 2.0
        b = (1.0 + s5) / 2.0
        pa = (s5 + 1.0) / (2.0 * s5)
        return rng.choice(
            np.array([a, b], dtype=np.float64),
            size=size,
            p=np.array([pa, 1.0 - pa], dtype=np.float64),
        ).astype(np.float64, copy=False)


def _as_dist(dist: WildDist | str) -> WildDist:
    return dist if isinstance(dist, WildDist) else WildDist(str(dist))


def wild_multipliers(
    n_obs: int,
    *,
    rng: np.random.Generator,
    dist: WildDist | str = "rademacher",
) -> NDArray[np.float64]:
    """IID wild multipliers, one per stacked observation: (n_obs,)."""
    return _as_dist(dist).draw(int(n_obs), rng=rng)


def period_multipliers(
    period_codes: Sequence[int] | NDArray[np.int64],
    n_periods: int,
    *,
    rng: np.random.Generator,
    dist: WildDist | str = "rademacher",
) -> NDArray[np.float64]:
    """Wild multipliers drawn once per time period and shared across units.

    ``period_codes`` maps every stacked observation to its period
    (0..n_periods-1); the returned vector has one entry per observation.
    """
    codes = np.asarray(period_codes, dtype=np.int64)
    if codes.size and (codes.min() < 0 or codes.max() >= n_periods):
        raise ValueError("period_codes must lie in 0..n_periods-1")
    draws = _as_dist(dist).draw(int(n_periods), rng=rng)
    return draws[codes]


def replication_rngs(
    seed: int | None, n_reps: int, *, stream: str = "uncorrected",
) -> list[np.random.Generator]:
    """Independent generators, one per replication index.

    Children are spawned from ``SeedSequence((seed, stream_key))`` so the
    draws of replication ``r`` depend only on the seed, the loop and ``r``,
    never on scheduling.
    """
    if stream not in STREAM_KEYS:
        raise ValueError(f"Unknown replication stream '{stream}'. Allowed: {sorted(STREAM_KEYS)}")
    entropy = None if seed is None else [int(seed), STREAM_KEYS[stream]]
    ss = np.random.SeedSequence(entropy)
    return [np.random.default_rng(child) for child in ss.spawn(int(n_reps))]


# ---------------------------------------------------------------------
# Studentized (percentile-t) inference
# ---------------------------------------------------------------------


def finite_sample_quantile(t_stats: np.ndarray, q: float) -> float:
    """Compute finite-sample corrected bootstrap quantile (B+1 rule)."""
    arr = np.asarray(t_stats, dtype=np.float64).ravel()
    if arr.size == 0:
        raise ValueError("t_stats must contain at least one bootstrap draw")
    if not np.all(np.isfinite(arr)):
        raise ValueError("t_stats contains non-finite values")
    B = int(arr.shape[0])
    if (B + 1) * float(q) > B:
        warnings.warn(
            f"{B} replications cannot resolve the {q:.3f} quantile; using the sample maximum.",
            stacklevel=2,
        )
    return la.finite_sample_quantile_bplus1(arr, q)


def studentized_deviation(
    beta_r: NDArray[np.float64],
    beta_ref: NDArray[np.float64],
    cov_r: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Componentwise |beta_r - beta_ref| / sqrt(diag(cov_r))."""
    d = np.diag(np.asarray(cov_r, dtype=np.float64))
    if np.any(d <= 0.0) or not np.all(np.isfinite(d)):
        raise np.linalg.LinAlgError("replicate covariance has a non-positive diagonal")
    return np.abs(np.asarray(beta_r) - np.asarray(beta_ref)) / np.sqrt(d)


def symmetric_interval(
    theta: NDArray[np.float64],
    cov: NDArray[np.float64],
    t_star: NDArray[np.float64],
    level: float,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Percentile-t interval theta ± q_k · se_k for each coefficient.

    ``t_star`` is (K, B): absolute studentized replicate deviations. Returns
    the (K, 2) interval and the (K,) critical values.
    """
    t_arr = np.asarray(t_star, dtype=np.float64)
    if t_arr.ndim == 1:
        t_arr = t_arr.reshape(1, -1)
    crit = np.array([finite_sample_quantile(row, level) for row in t_arr])
    se = np.sqrt(np.diag(np.asarray(cov, dtype=np.float64)))
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    half = crit * se
    return np.column_stack([theta - half, theta + half]), crit


def bootstrap_se(beta_star: NDArray[np.float64]) -> NDArray[np.float64]:
    """Compute bootstrap standard errors from bootstrap coefficient draws.

    Parameters
    ----------
    beta_star : (K, B) array
        Bootstrap draws of coefficients.

    Returns
    -------
    se : (K,) array
        Bootstrap standard errors (ddof=1).

    """
    arr = np.asarray(beta_star, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2:
        raise ValueError("beta_star must be a 2-D array of shape (K, B).")
    _K, B = arr.shape
    if B < 2:
        raise ValueError(f"bootstrap_se requires at least 2 draws; got B={B}.")
    if not np.isfinite(arr).all():
        bad = np.argwhere(~np.isfinite(arr))
        head = bad[:10].tolist()
        raise ValueError(
            "Non-finite bootstrap draws detected (showing up to 10 [k,b] indices): "
            f"{head}. This indicates numerical failure or an upstream bug."
        )
    return np.std(arr, axis=1, ddof=1).astype(np.float64)
