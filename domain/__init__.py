"""Massing Planner Domain Layer.

This package contains the core business logic organized by bounded contexts:
- massing: Site grid, height constraints, scoring, annealing search
"""

from domain import massing

__all__ = ["massing"]
