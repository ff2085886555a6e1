"""
Unit tests for geometry and distance utilities.

Tests:
- Geodesic reference distance and the cheaper approximations
- Bearing and midpoint
- Centroid helpers and their error cases
"""

import math

import pytest

from geocluster.schemas.data_models import Point
from geocluster.utils.error_handling import InvalidArgumentError
from geocluster.utils.geometry import (
    DEGREE_TO_METERS,
    calculate_bearing,
    calculate_centroid,
    calculate_distance,
    calculate_distance_km,
    calculate_midpoint,
    calculate_weighted_centroid,
    equirectangular_distance,
    haversine_distance,
    is_within_distance,
    manhattan_distance,
    squared_distance,
)


@pytest.mark.unit
class TestDistances:
    """Test distance functions."""

    def test_zero_distance(self):
        """Test distance from a point to itself."""
        p = Point(51.5, -0.12)
        assert calculate_distance(p, p) == pytest.approx(0.0, abs=1e-6)
        assert haversine_distance(p, p) == pytest.approx(0.0, abs=1e-6)
        assert equirectangular_distance(p, p) == pytest.approx(0.0, abs=1e-6)

    def test_geodesic_equator_degree(self):
        """Test one degree of longitude on the WGS84 equator."""
        distance = calculate_distance(Point(0.0, 0.0), Point(0.0, 1.0))
        assert distance == pytest.approx(111319.49, rel=1e-5)

    def test_short_distance_scenario(self):
        """Test the ~55 m pair used in clustering scenarios."""
        distance = calculate_distance(Point(0.0, 0.0), Point(0.0, 0.0005))
        assert 50.0 < distance < 60.0

    def test_distance_is_symmetric(self):
        """Test symmetry of geodesic distance."""
        a = Point(48.8566, 2.3522)
        b = Point(52.52, 13.405)
        assert calculate_distance(a, b) == pytest.approx(calculate_distance(b, a))

    def test_distance_km(self):
        """Test kilometer conversion."""
        a = Point(48.8566, 2.3522)
        b = Point(52.52, 13.405)
        assert calculate_distance_km(a, b) == pytest.approx(calculate_distance(a, b) / 1000)

    def test_approximations_close_to_geodesic(self):
        """Test haversine and equirectangular agree with geodesic over short range."""
        a = Point(40.0, -74.0)
        b = Point(40.01, -74.01)
        reference = calculate_distance(a, b)

        assert haversine_distance(a, b) == pytest.approx(reference, rel=0.01)
        assert equirectangular_distance(a, b) == pytest.approx(reference, rel=0.01)

    def test_haversine_uses_mean_earth_radius(self):
        """Test haversine quarter meridian."""
        distance = haversine_distance(Point(0.0, 0.0), Point(90.0, 0.0))
        assert distance == pytest.approx(math.pi / 2 * 6371000.0)

    def test_squared_distance_is_degrees(self):
        """Test squared distance is in squared degrees, not meters."""
        assert squared_distance(Point(0.0, 0.0), Point(3.0, 4.0)) == pytest.approx(25.0)

    def test_manhattan_distance(self):
        """Test manhattan distance scaling."""
        distance = manhattan_distance(Point(0.0, 0.0), Point(1.0, 1.0))
        assert distance == pytest.approx(2 * DEGREE_TO_METERS)

    def test_is_within_distance(self):
        """Test fast planar proximity check."""
        a = Point(0.0, 0.0)
        b = Point(0.0, 0.0005)
        assert is_within_distance(a, b, 100.0)
        assert not is_within_distance(a, b, 10.0)


@pytest.mark.unit
class TestBearingAndMidpoint:
    """Test bearing and midpoint."""

    @pytest.mark.parametrize(
        "target, expected",
        [
            (Point(1.0, 0.0), 0.0),
            (Point(0.0, 1.0), 90.0),
            (Point(-1.0, 0.0), 180.0),
            (Point(0.0, -1.0), 270.0),
        ],
    )
    def test_cardinal_bearings(self, target, expected):
        """Test bearings towards the four cardinal directions."""
        assert calculate_bearing(Point(0.0, 0.0), target) == pytest.approx(expected, abs=1e-9)

    def test_bearing_range(self):
        """Test bearing stays within [0, 360)."""
        bearing = calculate_bearing(Point(10.0, 10.0), Point(9.0, 9.0))
        assert 0.0 <= bearing < 360.0

    def test_midpoint_on_equator(self):
        """Test great-circle midpoint along the equator."""
        midpoint = calculate_midpoint(Point(0.0, 0.0), Point(0.0, 10.0))
        assert midpoint.latitude == pytest.approx(0.0, abs=1e-9)
        assert midpoint.longitude == pytest.approx(5.0)


@pytest.mark.unit
class TestCentroids:
    """Test centroid helpers."""

    def test_centroid(self):
        """Test unweighted centroid."""
        centroid = calculate_centroid([Point(0.0, 0.0), Point(2.0, 4.0)])
        assert centroid == Point(1.0, 2.0)

    def test_centroid_single_point(self):
        """Test centroid of one point is that point."""
        p = Point(3.0, 4.0)
        assert calculate_centroid([p]) is p

    def test_centroid_empty_raises(self):
        """Test empty input is rejected."""
        with pytest.raises(InvalidArgumentError):
            calculate_centroid([])

    def test_weighted_centroid(self):
        """Test weights pull the centroid."""
        centroid = calculate_weighted_centroid([Point(0.0, 0.0), Point(4.0, 0.0)], [3.0, 1.0])
        assert centroid.latitude == pytest.approx(1.0)
        assert centroid.longitude == pytest.approx(0.0)

    def test_weighted_centroid_empty_raises(self):
        """Test empty input is rejected."""
        with pytest.raises(InvalidArgumentError):
            calculate_weighted_centroid([], [])

    def test_weighted_centroid_length_mismatch_raises(self):
        """Test mismatched points and weights are rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            calculate_weighted_centroid([Point(0.0, 0.0), Point(1.0, 1.0)], [1.0])

        assert exc_info.value.details == {"points": 2, "weights": 1}

    def test_invalid_argument_is_value_error(self):
        """Test callers can catch ValueError."""
        with pytest.raises(ValueError):
            calculate_centroid([])
