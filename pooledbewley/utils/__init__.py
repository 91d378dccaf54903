# pooledbewley/utils/__init__.py
"""Utility functions module."""
from .formula import FormulaParser
from .helpers import escape_latex, pretty_term

__all__ = [
    "FormulaParser",
    "escape_latex",
    "pretty_term",
]
