"""Root pytest configuration for all tests.

Shared fixtures for the massing tests. Domain tests build grids and
constraints directly in memory; infrastructure tests write real files
under tmp_path.
"""

import numpy as np
import pytest

from domain.massing.value_objects import GridDimensions


@pytest.fixture
def site() -> GridDimensions:
    """The 10 x 10 site with 10 floors used across the suite."""
    return GridDimensions(width=10, depth=10, max_height=10)


@pytest.fixture
def small_site() -> GridDimensions:
    """A small 3 x 3 site with 4 floors, quick to search exhaustively."""
    return GridDimensions(width=3, depth=3, max_height=4)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random source so optimizer runs are reproducible."""
    return np.random.default_rng(42)
