"""Panel indexing: unit grouping, time ordering and half-sample slicing.

A :class:`Panel` is an immutable, time-ordered collection of
:class:`Unit` slices. It is constructed once per estimation call and shared
read-only by the estimator, the covariance routines and the bootstrap.
"""

# pooledbewley/core/panel.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from . import linalg as la
from .errors import InsufficientDataError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

LOGGER = logging.getLogger(__name__)

__all__ = [
    "HalfSample",
    "Panel",
    "Unit",
    "build_panel",
    "half_bounds",
    "min_obs",
    "sample_diagnostics",
    "unit_index",
]


class HalfSample(str, Enum):
    """Sample selector used by the jackknife."""

    FULL = "full"
    FIRST = "first-half"
    SECOND = "second-half"


def min_obs(lag_order: int) -> int:
    """Smallest admissible number of observations per unit."""
    return int(lag_order) + 2


def half_bounds(n_obs: int, half: HalfSample) -> slice:
    """Row slice of a half sample.

    The first half holds the first ceil(T/2) observations, the second half
    the remaining floor(T/2); for odd T the middle observation belongs to
    the first half only.
    """
    cut = (int(n_obs) + 1) // 2
    if half is HalfSample.FIRST:
        return slice(0, cut)
    if half is HalfSample.SECOND:
        return slice(cut, int(n_obs))
    return slice(0, int(n_obs))


@dataclass(frozen=True)
class Unit:
    """One cross-sectional member: its id, time stamps and aligned data."""

    uid: Any
    times: NDArray
    y: NDArray[np.float64]
    X: NDArray[np.float64]
    rows: NDArray[np.int64]
    period_codes: NDArray[np.int64]

    @property
    def n_obs(self) -> int:
        return int(self.y.shape[0])

    def half(self, half: HalfSample, lag_order: int) -> Unit:
        """Return the half-sample slice, validated against ``lag_order``."""
        if half is HalfSample.FULL:
            return self
        sl = half_bounds(self.n_obs, half)
        out = Unit(
            uid=self.uid,
            times=self.times[sl],
            y=self.y[sl],
            X=self.X[sl],
            rows=self.rows[sl],
            period_codes=self.period_codes[sl],
        )
        need = min_obs(lag_order)
        if out.n_obs < need:
            raise InsufficientDataError(
                f"half sample has {out.n_obs} observations; lag order {lag_order} "
                f"requires at least {need}",
                unit=self.uid,
                half=half.value,
                n_obs=out.n_obs,
                required=need,
            )
        return out


@dataclass(frozen=True)
class Panel:
    """Ordered collection of units sharing the regressor dimension ``k``."""

    units: tuple[Unit, ...]
    var_names: tuple[str, ...]
    periods: NDArray = field(repr=False)

    @property
    def N(self) -> int:
        return len(self.units)

    @property
    def k(self) -> int:
        return len(self.var_names)

    @property
    def n_obs(self) -> int:
        return int(sum(u.n_obs for u in self.units))

    @property
    def n_periods(self) -> int:
        return int(self.periods.shape[0])

    @property
    def offsets(self) -> NDArray[np.int64]:
        """Start position of each unit in the stacked (unit-major) layout."""
        lengths = np.array([u.n_obs for u in self.units], dtype=np.int64)
        return np.concatenate([[0], np.cumsum(lengths)])

    def stacked_period_codes(self) -> NDArray[np.int64]:
        return np.concatenate([u.period_codes for u in self.units])

    def half(self, half: HalfSample, lag_order: int) -> Panel:
        if half is HalfSample.FULL:
            return self
        return replace(self, units=tuple(u.half(half, lag_order) for u in self.units))

    def with_data(
        self,
        ys: Sequence[NDArray[np.float64]],
        Xs: Sequence[NDArray[np.float64]],
    ) -> Panel:
        """Copy of the panel with each unit's y and X replaced."""
        if len(ys) != self.N or len(Xs) != self.N:
            raise ValueError("with_data: one y and one X per unit are required.")
        units = []
        for u, y_new, X_new in zip(self.units, ys, Xs):
            y_new = np.asarray(y_new, dtype=np.float64).reshape(-1)
            X_new = np.asarray(X_new, dtype=np.float64).reshape(u.n_obs, self.k)
            if y_new.shape[0] != u.n_obs:
                raise ValueError(f"with_data: unit {u.uid!r} expects {u.n_obs} observations.")
            units.append(replace(u, y=y_new, X=X_new))
        return replace(self, units=tuple(units))

    def check_lengths(self, lag_order: int) -> None:
        """Raise ``InsufficientDataError`` naming the first unit that is too short."""
        need = min_obs(lag_order)
        for u in self.units:
            if u.n_obs < need:
                raise InsufficientDataError(
                    f"unit has {u.n_obs} observations; lag order {lag_order} "
                    f"requires at least {need}",
                    unit=u.uid,
                    n_obs=u.n_obs,
                    required=need,
                )


def unit_index(
    unit_ids: Sequence[Any] | NDArray,
    time_ids: Sequence[Any] | NDArray,
) -> tuple[NDArray, list[NDArray[np.int64]]]:
    """Distinct unit ids (sorted) and each unit's row positions in time order.

    Raises on duplicate (unit, time) pairs.
    """
    ids = np.asarray(unit_ids).reshape(-1)
    times = np.asarray(time_ids).reshape(-1)
    if ids.shape[0] != times.shape[0]:
        raise ValueError("unit and time identifiers must have the same length.")
    uniq, codes = np.unique(ids, return_inverse=True)
    order = np.lexsort((times, codes))
    sc = codes[order]
    st = times[order]
    dup = (sc[1:] == sc[:-1]) & (st[1:] == st[:-1])
    if np.any(dup):
        j = int(np.argmax(dup))
        msg = f"Duplicate (id,time) found: ({uniq[sc[j]]!r}, {st[j]!r})"
        raise ValueError(msg)
    bounds = np.searchsorted(sc, np.arange(uniq.shape[0] + 1))
    rows = [order[bounds[g]:bounds[g + 1]].astype(np.int64) for g in range(uniq.shape[0])]
    return uniq, rows


def build_panel(  # noqa: PLR0913
    y: Sequence[float] | NDArray[np.float64],
    X: Sequence[Sequence[float]] | NDArray[np.float64],
    unit_ids: Sequence[Any] | NDArray,
    time_ids: Sequence[Any] | NDArray,
    *,
    lag_order: int,
    var_names: Sequence[str] | None = None,
) -> Panel:
    """Group raw observations into a time-ordered :class:`Panel`.

    Every unit must contribute at least ``lag_order + 2`` observations.
    """
    yd = np.asarray(y, dtype=np.float64).reshape(-1)
    Xd = np.asarray(X, dtype=np.float64)
    if Xd.ndim == 1:
        Xd = Xd.reshape(-1, 1)
    if Xd.ndim != 2 or Xd.shape[0] != yd.shape[0]:
        raise ValueError(f"X must be (n, k) with n={yd.shape[0]}; got shape {Xd.shape}.")
    if Xd.shape[1] == 0:
        raise ValueError("At least one regressor is required.")
    la._assert_all_finite(yd, Xd)  # noqa: SLF001
    times = np.asarray(time_ids).reshape(-1)
    if times.dtype.kind in {"f", "c"} and not np.all(np.isfinite(times)):
        raise ValueError("time identifiers contain NA/NaN/Inf.")
    if var_names is None:
        var_names = [f"x{j}" for j in range(Xd.shape[1])]
    if len(var_names) != Xd.shape[1]:
        raise ValueError(f"var_names has {len(var_names)} entries for {Xd.shape[1]} regressors.")

    uniq, rows = unit_index(unit_ids, times)
    periods = np.unique(times)
    period_codes = np.searchsorted(periods, times).astype(np.int64)
    units = tuple(
        Unit(
            uid=uniq[g].item() if hasattr(uniq[g], "item") else uniq[g],
            times=times[r],
            y=yd[r],
            X=Xd[r],
            rows=r,
            period_codes=period_codes[r],
        )
        for g, r in enumerate(rows)
    )
    panel = Panel(units=units, var_names=tuple(str(v) for v in var_names), periods=periods)
    panel.check_lengths(lag_order)
    LOGGER.debug(
        "Built panel: N=%d, k=%d, n_obs=%d, periods=%d",
        panel.N, panel.k, panel.n_obs, panel.n_periods,
    )
    return panel


def sample_diagnostics(panel: Panel) -> dict[str, float]:
    """Unit count and min/avg/max observations per unit."""
    lengths = np.array([u.n_obs for u in panel.units], dtype=np.float64)
    return {
        "N": int(panel.N),
        "n_obs": int(lengths.sum()),
        "T_min": int(lengths.min()),
        "T_avg": float(lengths.mean()),
        "T_max": int(lengths.max()),
    }
