"""GeoTIFF adapter for ConstraintRepository.

Implements loading of a height-limit raster (maximum floors per cell) from
GeoTIFF using rasterio and returning a domain ConstraintGrid Value Object.

Lifecycle (to avoid resource leaks):
1) Validate the path (extension, symlink, size)
2) Open dataset with context manager inside rasterio.Env
3) Read metadata and validate preconditions (band count, CRS, transform)
4) Convert NoData/NaN/negative pixels -> UNBUILDABLE; floor the rest to ints
5) Reorient rows (north first) to grid [x, y] indexing (y grows north)
6) Derive the plan area of one cell from the geotransform
7) Exit contexts to release GDAL handles
8) Return ConstraintGrid
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from pyproj import Geod

from domain.massing.errors import InvalidConstraintError
from domain.massing.value_objects import UNBUILDABLE, ConstraintGrid

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

# WGS84 ellipsoid for cell areas of rasters in geographic coordinates
_geod = Geod(ellps="WGS84")


def cell_area_m2(transform: Affine, crs: Any, width: int, height: int) -> float:
    """Return the plan area of one raster cell in square meters.

    Projected rasters use |a * e| directly. Geographic rasters measure the
    geodesic area of the centre cell, since degree cells shrink towards
    the poles.
    """
    if not getattr(crs, "is_geographic", False):
        return float(abs(transform.a * transform.e))

    col, row = width // 2, height // 2
    corners = [
        transform * (col, row),
        transform * (col + 1, row),
        transform * (col + 1, row + 1),
        transform * (col, row + 1),
    ]
    lons = [c[0] for c in corners]
    lats = [c[1] for c in corners]
    area, _ = _geod.polygon_area_perimeter(lons, lats)
    return float(abs(area))


def limits_from_band(band: np.ndarray, nodata: float | None) -> np.ndarray:
    """Convert a raster band (rows north first) to [x, y] floor limits."""
    values = np.asarray(band, dtype=np.float64)
    invalid = ~np.isfinite(values) | (values < 0)
    if nodata is not None and not math.isnan(nodata):
        # GeoTIFF nodata is stored as an exact value; compare exactly.
        invalid |= values == nodata

    limits = np.where(invalid, UNBUILDABLE, np.floor(np.where(invalid, 0, values)))
    return np.ascontiguousarray(np.flipud(limits).T.astype(np.int32))


class GeoTiffConstraintAdapter:
    """Infrastructure adapter for loading height limits from GeoTIFF files.

    Parameters
    ----------
    max_cells: int | None
        Optional budget for the number of raster cells. If exceeded, the
        adapter raises InvalidConstraintError before reading pixel data.
    """

    def __init__(self, max_cells: int | None = None) -> None:
        self.max_cells = max_cells

    def load_constraints(self, file_path: Path | str) -> ConstraintGrid:
        """Load a single-band height-limit GeoTIFF as a ConstraintGrid."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(str(path))

        if path.suffix.lower() not in (".tif", ".tiff"):
            raise InvalidConstraintError(f"Unsupported file extension: {path.suffix}")

        try:
            if path.is_symlink():
                raise InvalidConstraintError("Symlinks are not permitted")
            if path.stat().st_size == 0:
                raise InvalidConstraintError("Empty file")
        except OSError as e:
            # Log only filename, errno and strerror to avoid leaking absolute paths
            logger.error(
                "Failed to stat %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        try:
            with rasterio.Env():
                with rasterio.open(path) as src:
                    if src.count != 1:
                        raise InvalidConstraintError(
                            f"Expected 1 band, got {src.count}"
                        )
                    if src.crs is None:
                        raise InvalidConstraintError("Raster has no CRS defined")

                    transform: Affine = src.transform
                    if any(
                        math.isnan(v) or math.isinf(v)
                        for v in (
                            transform.a,
                            transform.b,
                            transform.c,
                            transform.d,
                            transform.e,
                            transform.f,
                        )
                    ):
                        raise InvalidConstraintError(
                            "Invalid (NaN/Inf) transform values"
                        )
                    if transform.a == 0 or transform.e == 0:
                        raise InvalidConstraintError("Invalid transform scale (zero)")

                    if self.max_cells is not None:
                        cells = src.width * src.height
                        if cells > self.max_cells:
                            raise InvalidConstraintError(
                                f"Raster has {cells} cells, budget is {self.max_cells}"
                            )

                    band = src.read(1, masked=True, out_dtype="float64")
                    if np.ma.is_masked(band):
                        band = band.filled(np.nan)
                    limits = limits_from_band(np.ma.getdata(band), src.nodata)
                    area = cell_area_m2(transform, src.crs, src.width, src.height)

        except PermissionError as e:
            # Re-raise with filename only to avoid leaking full path in logs
            raise PermissionError(path.name) from e
        except rasterio.errors.RasterioError as e:
            raise InvalidConstraintError(f"Corrupted or invalid raster: {e}") from e

        unbuildable_pct = float((limits == UNBUILDABLE).mean() * 100.0)
        if unbuildable_pct > 80.0:
            logger.warning(
                "Constraints %s: %.1f%% of cells unbuildable", path.name, unbuildable_pct
            )
        logger.debug(
            "Constraints %s: Loaded %dx%d grid, cell area %.2f m2",
            path.name,
            limits.shape[0],
            limits.shape[1],
            area,
        )

        try:
            return ConstraintGrid(data=limits, cell_area_m2=area)
        except ValueError as e:
            raise InvalidConstraintError(str(e)) from e
