"""Tests for the GridModel entity.

Grids are built directly in memory; no I/O is involved.
"""

from __future__ import annotations

import numpy as np
import pytest

from domain.massing.errors import (
    CorruptEncodingError,
    DimensionMismatchError,
    InvalidValueError,
    OutOfBoundsError,
)
from domain.massing.grid import GridModel
from domain.massing.value_objects import GridDimensions


# ---------------------------------------------------------------------------
# Test Helpers
# ---------------------------------------------------------------------------
def create_random_grid(dimensions: GridDimensions, seed: int = 7) -> GridModel:
    """Grid with random floor counts covering the full [0, max_height] range."""
    rng = np.random.default_rng(seed)
    floors = rng.integers(
        0, dimensions.max_height + 1, size=(dimensions.width, dimensions.depth)
    )
    return GridModel(dimensions, floors)


# ===========================================================================
# Construction
# ===========================================================================
def test_new_grid_is_empty(site):
    grid = GridModel.empty(site)

    assert grid.total_floors() == 0
    assert not grid.voxels().any()
    assert list(grid.iter_columns()) == []


def test_constructor_copies_caller_array(site):
    floors = np.zeros((10, 10), dtype=np.int64)
    grid = GridModel(site, floors)

    floors[0, 0] = 3

    assert grid.get_cell_value(0, 0) == 0


def test_constructor_rejects_wrong_shape(site):
    with pytest.raises(InvalidValueError, match="shape"):
        GridModel(site, np.zeros((10, 9), dtype=np.int32))


@pytest.mark.parametrize("bad", [-1, 11])
def test_constructor_rejects_out_of_range_floors(site, bad):
    floors = np.zeros((10, 10), dtype=np.int32)
    floors[4, 4] = bad

    with pytest.raises(InvalidValueError):
        GridModel(site, floors)


@pytest.mark.parametrize(
    "floors",
    [
        np.full((10, 10), 2.5),
        np.full((10, 10), 2.0),
        np.zeros((10, 10), dtype=bool),
    ],
)
def test_constructor_rejects_non_integer_floors(site, floors):
    with pytest.raises(InvalidValueError, match="integers"):
        GridModel(site, floors)


def test_constructor_range_checks_before_narrowing(site):
    floors = np.zeros((10, 10), dtype=np.int64)
    floors[0, 0] = 2**32 + 3

    with pytest.raises(InvalidValueError):
        GridModel(site, floors)


def test_dimensions_must_be_positive():
    with pytest.raises(ValueError):
        GridDimensions(width=0, depth=10, max_height=10)


# ===========================================================================
# Column edits
# ===========================================================================
def test_set_then_get_cell_value(site):
    """Setting a column reads back the same floor count."""
    grid = GridModel.empty(site)

    grid.set_cell_value(5, 5, 5)

    assert grid.get_cell_value(5, 5) == 5
    assert grid.total_floors() == 5


@pytest.mark.parametrize("floors", [0, 1, 4, 10])
def test_set_cell_value_keeps_column_contiguous(site, floors):
    """Voxels 0..f-1 are occupied and f..max_height-1 are not."""
    grid = GridModel.empty(site)
    grid.set_cell_value(2, 3, 7)

    grid.set_cell_value(2, 3, floors)

    column = grid.voxels()[2, 3]
    assert column[:floors].all()
    assert not column[floors:].any()
    assert grid.get_cell_value(2, 3) == floors


def test_set_cell_value_touches_only_target_column(site):
    grid = create_random_grid(site)
    before = np.array(grid.floors)

    grid.set_cell_value(1, 8, 0)

    after = np.array(grid.floors)
    before[1, 8] = 0
    assert np.array_equal(before, after)


@pytest.mark.parametrize("floors", [-1, 11])
def test_set_cell_value_rejects_invalid_floors(site, floors):
    grid = GridModel.empty(site)

    with pytest.raises(InvalidValueError):
        grid.set_cell_value(0, 0, floors)

    assert grid.get_cell_value(0, 0) == 0


@pytest.mark.parametrize("floors", [2.5, 3.0, "4", True, None])
def test_set_cell_value_rejects_non_integer_floors(site, floors):
    grid = GridModel.empty(site)
    grid.set_cell_value(0, 0, 1)

    with pytest.raises(InvalidValueError, match="integer"):
        grid.set_cell_value(0, 0, floors)

    assert grid.get_cell_value(0, 0) == 1


def test_set_cell_value_accepts_numpy_integers(site):
    grid = GridModel.empty(site)

    grid.set_cell_value(3, 3, np.int64(6))

    assert grid.get_cell_value(3, 3) == 6


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (10, 0), (0, 10), (10, 10)])
def test_column_access_out_of_bounds(site, x, y):
    grid = GridModel.empty(site)

    with pytest.raises(OutOfBoundsError) as exc_info:
        grid.get_cell_value(x, y)
    assert exc_info.value.coordinates == (x, y)
    assert exc_info.value.extent == (10, 10)

    with pytest.raises(OutOfBoundsError):
        grid.set_cell_value(x, y, 1)


# ===========================================================================
# Voxel edits
# ===========================================================================
def test_clearing_voxel_removes_everything_above(site):
    """Removing a floor removes everything built on top of it."""
    grid = GridModel.empty(site)
    grid.set_cell_value(4, 4, 8)

    grid.set_voxel(4, 4, 3, False)

    assert grid.get_cell_value(4, 4) == 3
    assert not grid.voxels()[4, 4, 3:].any()
    assert grid.voxels()[4, 4, :3].all()


def test_clearing_voxel_above_top_is_noop(site):
    grid = GridModel.empty(site)
    grid.set_cell_value(4, 4, 2)

    grid.set_voxel(4, 4, 6, False)

    assert grid.get_cell_value(4, 4) == 2


def test_occupying_voxel_fills_beneath(site):
    grid = GridModel.empty(site)

    grid.set_voxel(0, 9, 5, True)

    assert grid.get_cell_value(0, 9) == 6
    assert all(grid.get_voxel(0, 9, z) for z in range(6))
    assert not grid.get_voxel(0, 9, 6)


def test_occupying_existing_voxel_keeps_height(site):
    grid = GridModel.empty(site)
    grid.set_cell_value(1, 1, 7)

    grid.set_voxel(1, 1, 2, True)

    assert grid.get_cell_value(1, 1) == 7


@pytest.mark.parametrize("x, y, z", [(10, 0, 0), (0, -1, 0), (0, 0, 10), (0, 0, -1)])
def test_voxel_access_out_of_bounds(site, x, y, z):
    grid = GridModel.empty(site)

    with pytest.raises(OutOfBoundsError) as exc_info:
        grid.set_voxel(x, y, z, True)
    assert exc_info.value.extent == (10, 10, 10)

    with pytest.raises(OutOfBoundsError):
        grid.get_voxel(x, y, z)


# ===========================================================================
# Read API
# ===========================================================================
def test_floors_view_is_read_only(site):
    grid = GridModel.empty(site)

    with pytest.raises(ValueError):
        grid.floors[0, 0] = 4


def test_iter_columns_lists_non_empty_columns(site):
    grid = GridModel.empty(site)
    grid.set_cell_value(5, 5, 5)
    grid.set_cell_value(5, 7, 4)

    assert sorted(grid.iter_columns()) == [(5, 5, 5), (5, 7, 4)]


def test_copy_is_independent(site):
    grid = create_random_grid(site)
    clone = grid.copy()

    clone.set_cell_value(0, 0, 0 if grid.get_cell_value(0, 0) else 1)

    assert clone != grid


def test_equality_considers_dimensions():
    a = GridModel.empty(GridDimensions(width=2, depth=2, max_height=3))
    b = GridModel.empty(GridDimensions(width=2, depth=2, max_height=4))

    assert a != b
    assert a == GridModel.empty(GridDimensions(width=2, depth=2, max_height=3))


def test_require_same_extent(site):
    grid = GridModel.empty(site)

    grid.require_same_extent(10, 10)
    with pytest.raises(DimensionMismatchError):
        grid.require_same_extent(10, 9)


# ===========================================================================
# Encoding
# ===========================================================================
def test_scenario_edit_then_round_trip(site):
    """A single building survives encode/decode."""
    grid = GridModel.empty(site)
    grid.set_cell_value(5, 5, 5)

    restored = GridModel.decode(grid.encode(), site)

    assert restored.get_cell_value(5, 5) == 5
    assert restored == grid


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_round_trip_random_grids(site, seed):
    grid = create_random_grid(site, seed)

    assert GridModel.decode(grid.encode(), site) == grid


def test_round_trip_non_square_grid():
    dims = GridDimensions(width=4, depth=2, max_height=12)
    grid = GridModel.empty(dims)
    grid.set_cell_value(3, 0, 12)
    grid.set_cell_value(0, 1, 10)

    assert GridModel.decode(grid.encode(), dims) == grid


def test_encoding_is_row_major_with_x_fastest():
    dims = GridDimensions(width=3, depth=2, max_height=9)
    grid = GridModel.empty(dims)
    grid.set_cell_value(1, 0, 2)
    grid.set_cell_value(0, 1, 7)

    assert grid.encode() == "0,2,0,7,0,0"


@pytest.mark.parametrize(
    "encoded",
    [
        "not-a-valid-encoding",
        "",
        ",".join(["0"] * 99),
        ",".join(["0"] * 101),
        ",".join(["0"] * 99 + ["x"]),
        ",".join(["0"] * 99 + ["-1"]),
        ",".join(["0"] * 99 + ["11"]),
        ",".join(["0"] * 99 + [" 1"]),
        ",".join(["0"] * 99 + ["1.5"]),
        ",".join(["0"] * 99 + ["9" * 5000]),
        ",".join(["0"] * 99 + ["0" * 5000 + "11"]),
    ],
)
def test_decode_rejects_corrupt_input(site, encoded):
    with pytest.raises(CorruptEncodingError):
        GridModel.decode(encoded, site)


def test_decode_accepts_leading_zeros(site):
    encoded = ",".join(["0"] * 99 + ["0" * 5000 + "7"])

    grid = GridModel.decode(encoded, site)

    assert grid.get_cell_value(9, 9) == 7


def test_load_replaces_state_in_place(site):
    grid = GridModel.empty(site)
    source = create_random_grid(site)

    result = grid.load(source.encode())

    assert result is grid
    assert grid == source


def test_load_leaves_grid_untouched_on_corrupt_input(site):
    grid = create_random_grid(site)
    before = grid.copy()

    with pytest.raises(CorruptEncodingError):
        grid.load("not-a-valid-encoding")

    assert grid == before
