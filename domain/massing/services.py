"""Massing Bounded Context - Domain Services.

Orchestration between the user-facing grid, the optimizer and the
persistence port. NO concrete I/O - stores are injected via domain ports.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np

from domain.massing.errors import CorruptEncodingError, DimensionMismatchError
from domain.massing.grid import GridModel
from domain.massing.optimizer import AnnealingOptimizer, ProgressSnapshot
from domain.massing.repositories import GridStateStore
from domain.massing.scoring import DEFAULT_WEIGHTS
from domain.massing.value_objects import (
    AnnealingConfig,
    ConstraintGrid,
    GridDimensions,
    ScoringWeights,
)

logger = logging.getLogger(__name__)

# Well-known key for the persisted user grid
GRID_STATE_KEY = "grid"


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------
def adjust_floors(grid: GridModel, x: int, y: int, delta: int) -> int:
    """Add (delta > 0) or remove (delta < 0) floors on a column.

    This is the click edit: one floor up, or one floor down with a modifier.
    The result is clamped to [0, max_height] rather than rejected.

    Returns:
        The column's new floor count

    Raises:
        OutOfBoundsError: If (x, y) is outside the grid
    """
    current = grid.get_cell_value(x, y)
    floors = min(max(current + delta, 0), grid.max_height)
    grid.set_cell_value(x, y, floors)
    return floors


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
def optimize_massing(
    grid: GridModel,
    constraints: ConstraintGrid,
    config: AnnealingConfig,
    *,
    start: GridModel | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    rng: np.random.Generator | None = None,
    on_progress: Callable[[ProgressSnapshot], None] | None = None,
) -> ProgressSnapshot:
    """Search for a better massing and merge the result into `grid`.

    The optimizer works on a private copy seeded from `start` (an empty grid
    of the same extent by default); `grid` is untouched until the search
    completes. `on_progress` receives every snapshot, typically to redraw.

    Returns:
        The final snapshot

    Raises:
        DimensionMismatchError: If grid, start and constraints extents differ
    """
    seed = start if start is not None else GridModel.empty(grid.dimensions)
    if seed.dimensions != grid.dimensions:
        raise DimensionMismatchError(
            f"Start grid {seed!r} does not match target grid {grid!r}"
        )

    optimizer = AnnealingOptimizer(seed, constraints, config, weights=weights, rng=rng)
    logger.info(
        "Starting massing search: %d iterations, cadence %d",
        config.iterations,
        config.cadence,
    )

    snapshot = optimizer.step()
    if on_progress is not None:
        on_progress(snapshot)
    while not snapshot.done:
        snapshot = optimizer.step()
        if on_progress is not None:
            on_progress(snapshot)

    grid.load(snapshot.value.encode())
    logger.info("Merged best massing (score %.3f) into grid", snapshot.best_score)
    return snapshot


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
def save_grid(store: GridStateStore, grid: GridModel, key: str = GRID_STATE_KEY) -> None:
    store.set(key, grid.encode())


def load_grid_or_empty(
    store: GridStateStore, dimensions: GridDimensions, key: str = GRID_STATE_KEY
) -> GridModel:
    """Restore a persisted grid, falling back to an empty one.

    A corrupt value is discarded rather than propagated.
    """
    encoded = store.get(key)
    if encoded is None:
        return GridModel.empty(dimensions)
    try:
        return GridModel.decode(encoded, dimensions)
    except CorruptEncodingError as e:
        logger.warning("Discarding corrupt persisted grid under %r: %s", key, e)
        return GridModel.empty(dimensions)
