"""Massing Bounded Context - Scoring Engine.

Pure functions mapping a (GridModel, ConstraintGrid) pair to a score.
NO hidden state: identical inputs always give bit-identical output, which
the annealing optimizer relies on when comparing score deltas.

score = area_weight * floor_area - penalty

The penalty charges every floor above its cell's limit more than the
floor area of a completely full site, so any violating grid scores below
every compliant grid.
"""

from __future__ import annotations

import numpy as np

from domain.massing.grid import GridModel
from domain.massing.value_objects import ConstraintGrid, ScoreBreakdown, ScoringWeights

DEFAULT_WEIGHTS = ScoringWeights()


def excess_floors(grid: GridModel, constraints: ConstraintGrid) -> int:
    """Count floors built above their cell's limit (UNBUILDABLE counts as 0)."""
    grid.require_same_extent(constraints.width, constraints.depth)
    excess = grid.floors - constraints.effective_limits()
    return int(np.clip(excess, 0, None).sum())


def penalty_per_excess_floor(
    grid: GridModel,
    constraints: ConstraintGrid,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Penalty for one floor over the limit; exceeds a full site's floor area."""
    floor_value = weights.area_weight * constraints.cell_area_m2
    return floor_value * (grid.dimensions.capacity + 1)


def score_breakdown(
    grid: GridModel,
    constraints: ConstraintGrid,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """Score a grid and return its components.

    Raises:
        DimensionMismatchError: If grid and constraint extents differ
    """
    over = excess_floors(grid, constraints)
    total_floors = grid.total_floors()

    # Combine integer counts before touching floats so repeated calls agree bit for bit.
    net_units = total_floors - over * (grid.dimensions.capacity + 1)
    floor_value = weights.area_weight * constraints.cell_area_m2

    return ScoreBreakdown(
        floor_area_m2=total_floors * constraints.cell_area_m2,
        excess_floors=over,
        penalty=over * penalty_per_excess_floor(grid, constraints, weights),
        total=net_units * floor_value,
    )


def score(
    grid: GridModel,
    constraints: ConstraintGrid,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Return the massing score of a grid under site constraints."""
    return score_breakdown(grid, constraints, weights).total
