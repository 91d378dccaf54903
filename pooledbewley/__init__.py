"""pooledbewley: pooled Bewley estimation of long-run relationships.

This package estimates a homogeneous long-run coefficient in dynamic
heterogeneous panels, with half-panel jackknife and simulation bias
corrections and percentile-t bootstrap confidence intervals.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "BiasCorrection",
    "ConfidenceInterval",
    "ConfigurationError",
    "EstimationResult",
    "InsufficientDataError",
    "PBConfig",
    "PooledBewley",
    "RegressorDynamics",
    "ResidualMode",
    "SingularMatrixError",
    "coverage_experiment",
    "modelsummary",
    "pbsummary",
    "simulate_ardl_panel",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "PooledBewley": ("pooledbewley.estimators.pooled_bewley", "PooledBewley"),
    "PBConfig": ("pooledbewley.estimators.base", "PBConfig"),
    "ConfidenceInterval": ("pooledbewley.estimators.base", "ConfidenceInterval"),
    "EstimationResult": ("pooledbewley.estimators.base", "EstimationResult"),
    "BiasCorrection": ("pooledbewley.core.options", "BiasCorrection"),
    "ResidualMode": ("pooledbewley.core.options", "ResidualMode"),
    "RegressorDynamics": ("pooledbewley.core.options", "RegressorDynamics"),
    "ConfigurationError": ("pooledbewley.core.errors", "ConfigurationError"),
    "InsufficientDataError": ("pooledbewley.core.errors", "InsufficientDataError"),
    "SingularMatrixError": ("pooledbewley.core.errors", "SingularMatrixError"),
    "modelsummary": ("pooledbewley.output.summary", "modelsummary"),
    "pbsummary": ("pooledbewley.output.summary", "pbsummary"),
    "simulate_ardl_panel": ("pooledbewley.sim.montecarlo", "simulate_ardl_panel"),
    "coverage_experiment": ("pooledbewley.sim.montecarlo", "coverage_experiment"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public estimators and utilities on first access."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'pooledbewley' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Ensure dir() exposes lazily imported names."""
    return sorted(set(globals()) | set(__all__))
