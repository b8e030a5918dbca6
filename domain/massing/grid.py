"""Massing Bounded Context - GridModel Entity.

Voxel occupancy of the site. Occupied voxels in a column always form a
prefix z = 0 .. floors-1, so the grid stores a single floor count per
column and derives the 3D occupancy field from it. Both edit entry points
(column height and single voxel) funnel through the column setter.

Persisted format (see encode/decode): comma-separated decimal floor counts,
row-major with y as the row and x varying fastest, i.e. token index
``y * width + x``.
"""

from __future__ import annotations

import numbers
import re
from collections.abc import Iterator

import numpy as np
from numpy.typing import NDArray

from domain.massing.errors import (
    CorruptEncodingError,
    DimensionMismatchError,
    InvalidValueError,
    OutOfBoundsError,
)
from domain.massing.value_objects import GridDimensions

TOKEN_SEPARATOR = ","
_TOKEN_PATTERN = re.compile(r"[0-9]+")


class GridModel:
    """Mutable voxel grid of building massing (Entity).

    Args:
        dimensions: Fixed site extent
        floors: Optional (width x depth) integer array of initial floor counts.
            Copied, never aliased.

    Raises:
        InvalidValueError: If floors has the wrong shape or values outside
            [0, max_height]
    """

    def __init__(
        self, dimensions: GridDimensions, floors: NDArray[np.integer] | None = None
    ) -> None:
        self._dimensions = dimensions
        shape = (dimensions.width, dimensions.depth)
        if floors is None:
            self._floors = np.zeros(shape, dtype=np.int32)
        else:
            floors = np.asarray(floors)
            if not np.issubdtype(floors.dtype, np.integer):
                raise InvalidValueError(
                    f"Floor counts must be integers, got {floors.dtype}"
                )
            # Range check before narrowing so wide values cannot wrap around.
            _check_floor_range(floors, dimensions.max_height)
            self._floors = np.array(floors, dtype=np.int32, copy=True, order="C")
        self.validate()

    # -----------------------------------------------------------------------
    # Construction helpers
    # -----------------------------------------------------------------------
    @classmethod
    def empty(cls, dimensions: GridDimensions) -> "GridModel":
        return cls(dimensions)

    @classmethod
    def decode(cls, encoded: str, dimensions: GridDimensions) -> "GridModel":
        """Build a grid from a string produced by encode().

        Raises:
            CorruptEncodingError: Wrong token count, non-numeric token, or a
                value outside [0, max_height]
        """
        return cls(dimensions, _parse_encoding(encoded, dimensions))

    def copy(self) -> "GridModel":
        return GridModel(self._dimensions, self._floors)

    # -----------------------------------------------------------------------
    # Read API
    # -----------------------------------------------------------------------
    @property
    def dimensions(self) -> GridDimensions:
        return self._dimensions

    @property
    def width(self) -> int:
        return self._dimensions.width

    @property
    def depth(self) -> int:
        return self._dimensions.depth

    @property
    def max_height(self) -> int:
        return self._dimensions.max_height

    @property
    def floors(self) -> NDArray[np.int32]:
        """Read-only view of the (width x depth) floor counts."""
        view = self._floors.view()
        view.flags.writeable = False
        return view

    def get_cell_value(self, x: int, y: int) -> int:
        """Return the number of floors in column (x, y)."""
        self._check_column(x, y)
        return int(self._floors[x, y])

    def get_voxel(self, x: int, y: int, z: int) -> bool:
        self._check_voxel(x, y, z)
        return z < self._floors[x, y]

    def voxels(self) -> NDArray[np.bool_]:
        """Return the (width x depth x max_height) occupancy field."""
        levels = np.arange(self.max_height, dtype=np.int32)
        occupancy = levels[np.newaxis, np.newaxis, :] < self._floors[:, :, np.newaxis]
        occupancy.flags.writeable = False
        return occupancy

    def total_floors(self) -> int:
        return int(self._floors.sum())

    def iter_columns(self) -> Iterator[tuple[int, int, int]]:
        """Yield (x, y, floors) for every non-empty column."""
        for x, y in zip(*np.nonzero(self._floors)):
            yield int(x), int(y), int(self._floors[x, y])

    # -----------------------------------------------------------------------
    # Write API
    # -----------------------------------------------------------------------
    def set_cell_value(self, x: int, y: int, floors: int) -> None:
        """Set column (x, y) to exactly `floors` contiguous occupied voxels.

        Raises:
            OutOfBoundsError: If (x, y) is outside the grid
            InvalidValueError: If floors is not an integer in [0, max_height]
        """
        self._check_column(x, y)
        if isinstance(floors, bool) or not isinstance(floors, numbers.Integral):
            raise InvalidValueError(f"Floor count must be an integer, got {floors!r}")
        if not 0 <= floors <= self.max_height:
            raise InvalidValueError(
                f"Floor count {floors} outside [0, {self.max_height}]"
            )
        self._floors[x, y] = floors

    def set_voxel(self, x: int, y: int, z: int, occupied: bool) -> None:
        """Occupy or clear a single voxel, keeping the column contiguous.

        Occupying voxel z fills everything beneath it. Clearing voxel z also
        clears every voxel above it: removing a floor removes everything
        built on top of it.

        Raises:
            OutOfBoundsError: If (x, y, z) is outside the grid
        """
        self._check_voxel(x, y, z)
        current = int(self._floors[x, y])
        if occupied:
            self.set_cell_value(x, y, max(current, z + 1))
        else:
            self.set_cell_value(x, y, min(current, z))

    def load(self, encoded: str) -> "GridModel":
        """Replace this grid's state with a decoded string, in place.

        Nothing changes if the string is corrupt.

        Raises:
            CorruptEncodingError: See decode()
        """
        self._floors = _parse_encoding(encoded, self._dimensions)
        return self

    # -----------------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------------
    def encode(self) -> str:
        """Serialize floor counts losslessly (row-major, y rows, x fastest)."""
        return TOKEN_SEPARATOR.join(str(int(v)) for v in self._floors.T.ravel())

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------
    def validate(self) -> None:
        """Check the floor array against the grid dimensions.

        Raises:
            InvalidValueError: Wrong shape or floor counts outside [0, max_height]
        """
        expected = (self.width, self.depth)
        if self._floors.shape != expected:
            raise InvalidValueError(
                f"Floor array shape {self._floors.shape} does not match {expected}"
            )
        _check_floor_range(self._floors, self.max_height)

    def require_same_extent(self, width: int, depth: int) -> None:
        if (self.width, self.depth) != (width, depth):
            raise DimensionMismatchError(
                f"Grid extent {self.width}x{self.depth} does not match {width}x{depth}"
            )

    def _check_column(self, x: int, y: int) -> None:
        if not self._dimensions.contains(x, y):
            raise OutOfBoundsError((x, y), (self.width, self.depth))

    def _check_voxel(self, x: int, y: int, z: int) -> None:
        if not (self._dimensions.contains(x, y) and 0 <= z < self.max_height):
            raise OutOfBoundsError(
                (x, y, z), (self.width, self.depth, self.max_height)
            )

    # -----------------------------------------------------------------------
    # Dunder
    # -----------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GridModel):
            return NotImplemented
        return self._dimensions == other._dimensions and bool(
            np.array_equal(self._floors, other._floors)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"GridModel({self.width}x{self.depth}x{self.max_height}, "
            f"floors={self.total_floors()})"
        )


def _check_floor_range(floors: NDArray[np.integer], max_height: int) -> None:
    if floors.size and (floors.min() < 0 or floors.max() > max_height):
        raise InvalidValueError(
            f"Floor counts must lie in [0, {max_height}], got "
            f"[{int(floors.min())}, {int(floors.max())}]"
        )


def _parse_encoding(encoded: str, dimensions: GridDimensions) -> NDArray[np.int32]:
    """Parse an encoded grid into a (width x depth) floor array."""
    tokens = encoded.split(TOKEN_SEPARATOR)
    if len(tokens) != dimensions.cell_count:
        raise CorruptEncodingError(
            f"Expected {dimensions.cell_count} tokens, got {len(tokens)}"
        )

    values: list[int] = []
    for index, token in enumerate(tokens):
        if not _TOKEN_PATTERN.fullmatch(token):
            raise CorruptEncodingError(f"Non-numeric token at index {index}: {token!r}")
        # Compare digit counts first; int() refuses very long digit strings.
        digits = token.lstrip("0") or "0"
        if (
            len(digits) > len(str(dimensions.max_height))
            or int(digits) > dimensions.max_height
        ):
            shown = token if len(token) <= 12 else f"{token[:12]}..."
            raise CorruptEncodingError(
                f"Token at index {index} is {shown}, outside [0, {dimensions.max_height}]"
            )
        value = int(digits)
        values.append(value)

    # Tokens are y-major; transpose back to [x, y] indexing.
    rows = np.array(values, dtype=np.int32).reshape(dimensions.depth, dimensions.width)
    return np.ascontiguousarray(rows.T)
