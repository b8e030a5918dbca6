"""Domain Ports for Massing I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .value_objects import ConstraintGrid


class GridStateStore(Protocol):
    """Port for a string key-value store holding encoded grids.

    Values are opaque to the store; they are produced by GridModel.encode().
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        ...


class ConstraintRepository(Protocol):
    """Port for obtaining site height limits from external sources.

    Implementations live in infrastructure (e.g., GeoTIFF adapter).
    """

    def load_constraints(self, file_path: Path | str) -> ConstraintGrid:
        """Load a height-limit raster and return a ConstraintGrid."""
        ...
