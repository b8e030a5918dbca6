"""Massing Bounded Context - Error Hierarchy.

Custom exceptions for grid editing, persistence and constraint loading.
Optimizer proposal rejection is ordinary control flow and has no error type.
"""

from __future__ import annotations


class MassingError(Exception):
    """Base error for massing operations."""


class OutOfBoundsError(MassingError):
    """Coordinate is outside the grid extent.

    Attributes:
        coordinates: The offending (x, y) or (x, y, z) tuple
        extent: The grid extent as (width, depth) or (width, depth, max_height)
    """

    def __init__(
        self, coordinates: tuple[int, ...], extent: tuple[int, ...]
    ) -> None:
        self.coordinates = coordinates
        self.extent = extent
        bounds = " x ".join(f"[0, {n})" for n in extent)
        super().__init__(f"Coordinates {coordinates} outside grid extent {bounds}")


class InvalidValueError(MassingError):
    """Floor count is outside [0, max_height]."""


class CorruptEncodingError(MassingError):
    """Persisted grid string is malformed (token count, non-numeric, range)."""


class DimensionMismatchError(MassingError):
    """Grid and constraint extents (or two grids) do not match."""


class InvalidConstraintError(MassingError):
    """Constraint source is missing, unreadable or not a usable height-limit raster."""
