"""Shared fixtures for the chemical field test suite."""

import numpy as np
import pytest

from chemical_field.model.field import ChemicalField


@pytest.fixture
def make_field():
    """Factory for fields; every field built here is closed after the test."""
    created = []

    def _make(kind="diffusing", boundary="conserve", rate=0.5,
              origin=(0.0, 0.0, 0.0), extent=(10.0, 10.0, 10.0),
              boxes=(5, 5, 5), dt=0.1, workers=1, **kwargs):
        field = ChemicalField(kind=kind, boundary=boundary, rate=rate,
                              origin=origin, extent=extent, boxes=boxes,
                              dt=dt, workers=workers, **kwargs)
        created.append(field)
        return field

    yield _make

    for field in created:
        field.close()


@pytest.fixture
def random_grid():
    """Reproducible concentrations in [0, 1) for a 7x5x4 grid."""
    rng = np.random.default_rng(0)
    return rng.random((7, 5, 4))


def _load_grid(field, grid):
    for (i, j, k), value in np.ndenumerate(grid):
        field.set_cell(i, j, k, value)


@pytest.fixture
def load_grid():
    """Write a full grid (values in [0, 1]) into a field cell by cell."""
    return _load_grid
