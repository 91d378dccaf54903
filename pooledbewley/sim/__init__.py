# pooledbewley/sim/__init__.py
"""Simulation designs for pooled Bewley experiments."""
from .montecarlo import coverage_experiment, simulate_ardl_panel

__all__ = ["coverage_experiment", "simulate_ardl_panel"]
