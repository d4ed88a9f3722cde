"""Tests for field geometry and point-to-cell mapping."""

import numpy as np
import pytest

from chemical_field.model.geometry import FieldGeometry


class TestFieldGeometry:
    """Box sizes, validation and derived quantities."""

    def test_box_sizes_follow_extent_over_count(self):
        geom = FieldGeometry((0, 0, 0), (10.0, 20.0, 30.0), (5, 4, 3))
        assert geom.shape == (5, 4, 3)
        assert geom.box_size == (2.0, 5.0, 10.0)
        assert geom.volume == 6000.0

    def test_fractional_remainder_is_accepted(self):
        geom = FieldGeometry((0, 0, 0), (10.0, 10.0, 10.0), (3, 3, 3))
        assert geom.box_width == pytest.approx(10.0 / 3)

    @pytest.mark.parametrize("boxes", [(0, 5, 5), (5, -1, 5), (5, 5, 2.5)])
    def test_rejects_bad_box_counts(self, boxes):
        with pytest.raises(ValueError, match="Box count"):
            FieldGeometry((0, 0, 0), (10, 10, 10), boxes)

    @pytest.mark.parametrize("extent", [(0, 10, 10), (10, -5, 10)])
    def test_rejects_non_positive_extent(self, extent):
        with pytest.raises(ValueError, match="Extent"):
            FieldGeometry((0, 0, 0), extent, (5, 5, 5))

    def test_rejects_wrong_dimensionality(self):
        with pytest.raises(ValueError, match="3 components"):
            FieldGeometry((0, 0), (10, 10, 10), (5, 5, 5))

    def test_face_ratios_use_linear_extents(self):
        geom = FieldGeometry((0, 0, 0), (10.0, 20.0, 30.0), (1, 1, 1))
        x_rat, y_rat, z_rat = geom.face_ratios()
        assert x_rat == pytest.approx(0.5)
        assert y_rat == pytest.approx(1.0)
        assert z_rat == pytest.approx(1.5)

    def test_face_ratios_are_one_for_cube(self):
        geom = FieldGeometry((0, 0, 0), (7.0, 7.0, 7.0), (2, 3, 4))
        assert geom.face_ratios() == pytest.approx((1.0, 1.0, 1.0))


class TestPointMapping:
    """Continuous coordinates to grid indices."""

    @pytest.fixture
    def geom(self):
        return FieldGeometry((-5.0, 0.0, 10.0), (10.0, 10.0, 10.0), (5, 5, 5))

    def test_origin_maps_to_first_cell(self, geom):
        assert geom.to_index((-5.0, 0.0, 10.0)) == (0, 0, 0)

    def test_interior_point(self, geom):
        # x: (1.0 + 5) / 2 = 3, y: 4.5 / 2 = 2.25, z: 9.99 / 2 = 4.995
        assert geom.to_index((1.0, 4.5, 19.99)) == (3, 2, 4)

    def test_upper_edge_is_outside(self, geom):
        assert not geom.contains((5.0, 5.0, 15.0))
        assert geom.to_index((5.0, 5.0, 15.0)) is None

    def test_just_below_upper_edge_stays_in_last_cell(self, geom):
        x = np.nextafter(5.0, -np.inf)
        assert geom.to_index((x, 0.0, 10.0)) == (4, 0, 0)

    @pytest.mark.parametrize("position", [
        (-6.0, 5.0, 15.0),
        (6.0, 5.0, 15.0),
        (0.0, -1.0, 15.0),
        (0.0, 11.0, 15.0),
        (0.0, 5.0, 9.0),
        (0.0, 5.0, 21.0),
    ])
    def test_outside_any_face(self, geom, position):
        assert geom.to_index(position) is None

    @pytest.mark.parametrize("position", [
        (np.nan, 5.0, 15.0),
        (0.0, np.nan, 15.0),
        (0.0, 5.0, np.nan),
    ])
    def test_nan_coordinate_is_outside(self, geom, position):
        assert not geom.contains(position)
        assert geom.to_index(position) is None

    @pytest.mark.parametrize("position", [(0.0, 5.0), (0.0, 5.0, 15.0, 1.0)])
    def test_rejects_wrong_dimensionality(self, geom, position):
        with pytest.raises(ValueError, match="3 components"):
            geom.to_index(position)
