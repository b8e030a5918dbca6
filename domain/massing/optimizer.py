"""Massing Bounded Context - Simulated Annealing Optimizer.

A resumable search over floor counts. The caller drives it: every call to
step() runs up to `cadence` iterations against a private grid and hands back
an independent snapshot of the best grid found so far. Suspension happens
only between iterations, so every snapshot observes a consistent state.

Per iteration:
1. Pick a random column and perturb its floor count, clamped to
   [0, min(max_height, limit)].
2. delta = score(candidate) - score(current).
3. Accept if delta >= 0, else with probability exp(delta / T).
4. Track the best grid seen.
5. Cool T along the configured schedule (reaches final_temperature at N).
"""

from __future__ import annotations

import logging
import math
from enum import Enum

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from domain.massing.grid import GridModel
from domain.massing.scoring import DEFAULT_WEIGHTS, score
from domain.massing.value_objects import AnnealingConfig, ConstraintGrid, ScoringWeights

logger = logging.getLogger(__name__)


class OptimizerState(str, Enum):
    RUNNING = "running"  # Iterations remain, no snapshot handed out yet
    YIELDING = "yielding"  # Paused at a cadence boundary
    DONE = "done"  # Iteration budget exhausted


class ProgressSnapshot(BaseModel):
    """Progress handed back to the caller after each step (Value Object).

    `value` is a copy of the best grid found so far; mutating it never
    affects the optimizer.
    """

    value: GridModel
    done: bool
    iteration: int = Field(ge=0)
    temperature: float = Field(gt=0)
    best_score: float
    current_score: float
    accepted: int = Field(ge=0)  # Accepted proposals so far

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class AnnealingOptimizer:
    """Resumable simulated annealing over a private copy of a grid.

    Args:
        start: Seed grid; copied, the caller's instance is never touched
        constraints: Site height limits, same extent as `start`
        config: Iteration budget, cadence and cooling schedule
        weights: Scoring weights
        rng: Random source; inject a seeded Generator for reproducible runs

    Raises:
        InvalidValueError: If `start` fails grid validation
        DimensionMismatchError: If `start` and `constraints` extents differ
    """

    def __init__(
        self,
        start: GridModel,
        constraints: ConstraintGrid,
        config: AnnealingConfig,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        rng: np.random.Generator | None = None,
    ) -> None:
        start.validate()
        start.require_same_extent(constraints.width, constraints.depth)

        self.config = config
        self.constraints = constraints
        self.weights = weights
        self._rng = rng if rng is not None else np.random.default_rng()

        # Upper bound per column for proposals: never above the cell limit.
        self._upper = np.minimum(constraints.effective_limits(), start.max_height)

        self._current = start.copy()
        self._current_score = score(self._current, constraints, weights)
        self._best = self._current.copy()
        self._best_score = self._current_score
        self._iteration = 0
        self._accepted = 0
        self._temperature = config.temperature_at(0)
        self._state = OptimizerState.RUNNING
        self._history: list[float] = []

    # -----------------------------------------------------------------------
    # Read API
    # -----------------------------------------------------------------------
    @property
    def state(self) -> OptimizerState:
        return self._state

    @property
    def done(self) -> bool:
        return self._iteration >= self.config.iterations

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def best_score(self) -> float:
        return self._best_score

    @property
    def history(self) -> tuple[float, ...]:
        """Best-so-far score at every step() call, in order."""
        return tuple(self._history)

    # -----------------------------------------------------------------------
    # Driving
    # -----------------------------------------------------------------------
    def step(self) -> ProgressSnapshot:
        """Run up to `cadence` iterations and return a snapshot.

        Once the budget is exhausted, further calls return an equal final
        snapshot without iterating.
        """
        if self.done:
            return self._snapshot()

        self._state = OptimizerState.RUNNING
        remaining = self.config.iterations - self._iteration
        for _ in range(min(self.config.cadence, remaining)):
            self._iterate()

        self._history.append(self._best_score)
        if self.done:
            self._state = OptimizerState.DONE
            logger.info(
                "Annealing finished after %d iterations: best score %.3f, %d accepted",
                self._iteration,
                self._best_score,
                self._accepted,
            )
        else:
            self._state = OptimizerState.YIELDING
        return self._snapshot()

    def run_to_completion(self) -> ProgressSnapshot:
        snapshot = self.step()
        while not snapshot.done:
            snapshot = self.step()
        return snapshot

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------
    def _iterate(self) -> None:
        x = int(self._rng.integers(self._current.width))
        y = int(self._rng.integers(self._current.depth))
        previous = self._current.get_cell_value(x, y)
        proposed = self._propose(x, y, previous)

        # Apply in place; revert below if rejected.
        self._current.set_cell_value(x, y, proposed)
        candidate_score = score(self._current, self.constraints, self.weights)
        delta = candidate_score - self._current_score

        if self._accept(delta):
            self._current_score = candidate_score
            self._accepted += 1
            if candidate_score > self._best_score:
                self._best = self._current.copy()
                self._best_score = candidate_score
                logger.debug(
                    "Iteration %d: new best score %.3f", self._iteration, candidate_score
                )
        else:
            self._current.set_cell_value(x, y, previous)

        self._iteration += 1
        self._temperature = self.config.temperature_at(self._iteration)

    def _propose(self, x: int, y: int, floors: int) -> int:
        magnitude = int(self._rng.integers(1, self.config.max_step + 1))
        direction = 1 if self._rng.random() < 0.5 else -1
        upper = int(self._upper[x, y])
        return min(max(floors + direction * magnitude, 0), upper)

    def _accept(self, delta: float) -> bool:
        if delta >= 0:
            return True
        # Metropolis criterion; exp underflows to 0.0 for large penalties.
        return self._rng.random() < math.exp(delta / self._temperature)

    def _snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            value=self._best.copy(),
            done=self.done,
            iteration=self._iteration,
            temperature=self._temperature,
            best_score=self._best_score,
            current_score=self._current_score,
            accepted=self._accepted,
        )
