# pooledbewley/core/__init__.py
"""Core computational modules for pooledbewley."""
from . import annihilator, bootstrap, errors, linalg, options, panel, pb, shortrun, simulate

__all__ = [
    "annihilator",
    "bootstrap",
    "errors",
    "linalg",
    "options",
    "panel",
    "pb",
    "shortrun",
    "simulate",
]
