"""Exception types raised by the pooled Bewley estimation core.

The classes subclass the builtin/NumPy exceptions that the rest of the
package would otherwise raise (``ValueError`` for bad input,
``np.linalg.LinAlgError`` for failed factorizations), so generic handlers
keep working.
"""

# pooledbewley/core/errors.py
from __future__ import annotations

from typing import Any

import numpy as np

__all__ = [
    "ConfigurationError",
    "InsufficientDataError",
    "SingularMatrixError",
]


def _where(unit: Any, half: str | None, replication: int | None) -> str:
    parts = []
    if unit is not None:
        parts.append(f"unit={unit!r}")
    if half is not None:
        parts.append(f"sample={half}")
    if replication is not None:
        parts.append(f"replication={replication}")
    return f" [{', '.join(parts)}]" if parts else ""


class ConfigurationError(ValueError):
    """Invalid option value; raised before any estimation is attempted."""

    def __init__(self, option: str, message: str) -> None:
        self.option = option
        super().__init__(f"{option}: {message}")


class InsufficientDataError(ValueError):
    """A unit (or one of its half samples) is too short for the lag order."""

    def __init__(
        self,
        message: str,
        *,
        unit: Any = None,
        half: str | None = None,
        n_obs: int | None = None,
        required: int | None = None,
    ) -> None:
        self.unit = unit
        self.half = half
        self.n_obs = n_obs
        self.required = required
        super().__init__(message + _where(unit, half, None))


class SingularMatrixError(np.linalg.LinAlgError):
    """A normal-equations matrix is not positive definite.

    ``unit``, ``half`` and ``replication`` are filled in as the error
    propagates outwards so that the final message pinpoints the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        unit: Any = None,
        half: str | None = None,
        replication: int | None = None,
    ) -> None:
        self.base_message = message
        self.unit = unit
        self.half = half
        self.replication = replication
        super().__init__(message + _where(unit, half, replication))

    def located(
        self,
        *,
        unit: Any = None,
        half: str | None = None,
        replication: int | None = None,
    ) -> SingularMatrixError:
        """Return a copy with any missing location fields filled in."""
        return SingularMatrixError(
            self.base_message,
            unit=self.unit if self.unit is not None else unit,
            half=self.half if self.half is not None else half,
            replication=self.replication if self.replication is not None else replication,
        )
