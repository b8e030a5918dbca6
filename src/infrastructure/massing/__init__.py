"""Infrastructure adapters for the massing bounded context.

This module provides the infrastructure layer implementations for massing
operations: loading height limits from GeoTIFF files and persisting the
encoded grid in a JSON key-value file.
"""

from .geotiff_constraints import GeoTiffConstraintAdapter
from .json_state_store import JsonFileStateStore

__all__ = ["GeoTiffConstraintAdapter", "JsonFileStateStore"]
