"""Massing Bounded Context - Value Objects.

Immutable data structures describing the site and the search parameters.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.massing.errors import OutOfBoundsError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
UNBUILDABLE = -1  # Constraint sentinel: no floors may be built on this cell


class GridDimensions(BaseModel):
    """Fixed extent of a site grid (Value Object).

    Invariants:
        GD-1: width > 0
        GD-2: depth > 0
        GD-3: max_height > 0
    """

    width: int = Field(gt=0)  # Cells along x
    depth: int = Field(gt=0)  # Cells along y
    max_height: int = Field(gt=0)  # Voxels per column (floors)

    model_config = ConfigDict(frozen=True)

    @property
    def cell_count(self) -> int:
        """Number of columns on the site."""
        return self.width * self.depth

    @property
    def capacity(self) -> int:
        """Total number of voxels (the most floors any grid can hold)."""
        return self.width * self.depth * self.max_height

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.depth


class ConstraintGrid(BaseModel):
    """Per-cell upper bound on buildable floors (Value Object).

    Cells holding UNBUILDABLE may not carry any floors. The data array is
    indexed ``data[x, y]`` and made read-only at construction time.
    """

    data: NDArray[np.int32]  # 2D (width x depth) max floors, read-only
    cell_area_m2: float = Field(default=1.0, gt=0)  # Plan area of one cell

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_limits(self) -> "ConstraintGrid":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if not np.issubdtype(self.data.dtype, np.integer):
            raise ValueError(f"Data must hold integers, got {self.data.dtype}")
        if (self.data < UNBUILDABLE).any():
            raise ValueError(
                f"Constraint values must be >= {UNBUILDABLE}, got {int(self.data.min())}"
            )

        # Own a frozen copy so caller arrays are never aliased or flipped.
        immutable = np.array(self.data, dtype=np.int32, copy=True, order="C")
        immutable.flags.writeable = False
        object.__setattr__(self, "data", immutable)
        return self

    @classmethod
    def unrestricted(
        cls, dimensions: GridDimensions, cell_area_m2: float = 1.0
    ) -> "ConstraintGrid":
        """Constraint grid allowing full height everywhere."""
        data = np.full(
            (dimensions.width, dimensions.depth), dimensions.max_height, dtype=np.int32
        )
        return cls(data=data, cell_area_m2=cell_area_m2)

    @property
    def width(self) -> int:
        return int(self.data.shape[0])

    @property
    def depth(self) -> int:
        return int(self.data.shape[1])

    def get_constraint(self, x: int, y: int) -> int:
        """Return the maximum floors for a cell (UNBUILDABLE if none allowed).

        Raises:
            OutOfBoundsError: If (x, y) is outside the constraint extent
        """
        if not (0 <= x < self.width and 0 <= y < self.depth):
            raise OutOfBoundsError((x, y), (self.width, self.depth))
        return int(self.data[x, y])

    def is_buildable(self, x: int, y: int) -> bool:
        return self.get_constraint(x, y) > 0

    def effective_limits(self) -> NDArray[np.int32]:
        """Return limits with UNBUILDABLE mapped to 0 floors."""
        return np.maximum(self.data, 0)


class ScoringWeights(BaseModel):
    """Tunable weights for the massing score (Value Object)."""

    area_weight: float = Field(default=1.0, gt=0)  # Score per m2 of floor area

    model_config = ConfigDict(frozen=True)


class ScoreBreakdown(BaseModel):
    """Components of a massing score, for display next to the model."""

    floor_area_m2: float = Field(ge=0)
    excess_floors: int = Field(ge=0)  # Floors above their cell's limit
    penalty: float = Field(ge=0)
    total: float

    model_config = ConfigDict(frozen=True)

    @property
    def is_compliant(self) -> bool:
        return self.excess_floors == 0


class AnnealingConfig(BaseModel):
    """Simulated annealing parameters (Value Object).

    Invariants:
        AC-1: iterations > 0
        AC-2: cadence > 0
        AC-3: 0 < final_temperature <= initial_temperature
        AC-4: max_step >= 1
    """

    iterations: int = Field(gt=0)  # Total iteration budget N
    cadence: int = Field(gt=0)  # Iterations between snapshots K
    initial_temperature: float = Field(default=10.0, gt=0)
    final_temperature: float = Field(default=0.01, gt=0)
    schedule: Literal["geometric", "linear"] = "geometric"
    max_step: int = Field(default=1, ge=1)  # Largest floor change per proposal

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_temperatures(self) -> "AnnealingConfig":
        if self.final_temperature > self.initial_temperature:
            raise ValueError(
                f"final_temperature ({self.final_temperature}) must not exceed "
                f"initial_temperature ({self.initial_temperature})"
            )
        return self

    def temperature_at(self, iteration: int) -> float:
        """Temperature for a given iteration; decays to final_temperature at N."""
        progress = min(max(iteration / self.iterations, 0.0), 1.0)
        if self.schedule == "linear":
            return self.initial_temperature + (
                self.final_temperature - self.initial_temperature
            ) * progress
        ratio = self.final_temperature / self.initial_temperature
        return self.initial_temperature * ratio**progress
