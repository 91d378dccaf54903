# pooledbewley/output/__init__.py
"""Tabular output for pooled Bewley results."""
from .summary import coef_table, modelsummary, pbsummary

__all__ = [
    "coef_table",
    "modelsummary",
    "pbsummary",
]
