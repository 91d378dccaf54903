"""Estimator exports with lazy loading.

Public estimator classes and result containers. Uses lazy imports to avoid
circular dependencies.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "ConfidenceInterval",
    "EstimationResult",
    "PBConfig",
    "PooledBewley",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ConfidenceInterval": ("pooledbewley.estimators.base", "ConfidenceInterval"),
    "EstimationResult": ("pooledbewley.estimators.base", "EstimationResult"),
    "PBConfig": ("pooledbewley.estimators.base", "PBConfig"),
    "PooledBewley": ("pooledbewley.estimators.pooled_bewley", "PooledBewley"),
}


def __getattr__(name: str) -> Any:
    """Lazily import estimator classes and shared containers."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'pooledbewley.estimators' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Expose lazily loaded attributes to ``dir()``."""
    return sorted(set(globals()) | set(__all__))
