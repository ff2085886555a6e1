"""
Geodesic and planar distance utilities.

Provides a reference ellipsoidal distance (WGS84 via pyproj) plus cheaper
approximations for bulk work:
- haversine: spherical, fast
- equirectangular: planar projection, fastest, degrades over long distances
  and at high latitude
- squared / manhattan: comparison helpers

Every function is pure. ``squared_distance`` returns squared degrees, so it
must never be compared against a meter threshold.
"""

import math
from typing import Sequence

import numpy as np
from pyproj import Geod

from geocluster.schemas.data_models import Point
from geocluster.utils.error_handling import InvalidArgumentError


EARTH_RADIUS_METERS = 6371000.0
DEGREE_TO_METERS = math.pi / 180 * EARTH_RADIUS_METERS

_WGS84 = Geod(ellps="WGS84")


def calculate_distance(point1: Point, point2: Point) -> float:
    """Geodesic distance in meters on the WGS84 ellipsoid."""
    _, _, distance = _WGS84.inv(
        point1.longitude, point1.latitude, point2.longitude, point2.latitude
    )
    return float(distance)


def calculate_distance_km(point1: Point, point2: Point) -> float:
    return calculate_distance(point1, point2) / 1000.0


def haversine_distance(point1: Point, point2: Point) -> float:
    """Great-circle distance in meters on a sphere of radius 6371km."""
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)
    delta_lat = math.radians(point2.latitude - point1.latitude)
    delta_lng = math.radians(point2.longitude - point1.longitude)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def equirectangular_distance(point1: Point, point2: Point) -> float:
    """Planar approximation in meters."""
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)
    delta_lat = math.radians(point2.latitude - point1.latitude)
    delta_lng = math.radians(point2.longitude - point1.longitude)

    x = delta_lng * math.cos((lat1 + lat2) / 2)
    y = delta_lat

    return EARTH_RADIUS_METERS * math.sqrt(x * x + y * y)


def squared_distance(point1: Point, point2: Point) -> float:
    """Squared planar distance in degree^2 units."""
    delta_lat = point2.latitude - point1.latitude
    delta_lng = point2.longitude - point1.longitude
    return delta_lat * delta_lat + delta_lng * delta_lng


def manhattan_distance(point1: Point, point2: Point) -> float:
    """Sum of absolute degree differences scaled to meters."""
    delta_lat = abs(point2.latitude - point1.latitude)
    delta_lng = abs(point2.longitude - point1.longitude)
    return (delta_lat + delta_lng) * DEGREE_TO_METERS


def is_within_distance(point1: Point, point2: Point, distance_meters: float) -> bool:
    """Fast planar check that skips the square root."""
    delta_lat = (point2.latitude - point1.latitude) * DEGREE_TO_METERS
    delta_lng = (point2.longitude - point1.longitude) * DEGREE_TO_METERS
    return delta_lat * delta_lat + delta_lng * delta_lng <= distance_meters * distance_meters


def calculate_bearing(point1: Point, point2: Point) -> float:
    """Initial bearing in degrees [0, 360), clockwise from north."""
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)
    delta_lng = math.radians(point2.longitude - point1.longitude)

    y = math.sin(delta_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(delta_lng)

    return (math.degrees(math.atan2(y, x)) + 360) % 360


def calculate_midpoint(point1: Point, point2: Point) -> Point:
    """Great-circle midpoint."""
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)
    lng1 = math.radians(point1.longitude)
    delta_lng = math.radians(point2.longitude - point1.longitude)

    bx = math.cos(lat2) * math.cos(delta_lng)
    by = math.cos(lat2) * math.sin(delta_lng)

    lat3 = math.atan2(
        math.sin(lat1) + math.sin(lat2),
        math.sqrt((math.cos(lat1) + bx) ** 2 + by * by),
    )
    lng3 = lng1 + math.atan2(by, math.cos(lat1) + bx)

    return Point(math.degrees(lat3), math.degrees(lng3))


def calculate_centroid(points: Sequence[Point]) -> Point:
    """
    Unweighted arithmetic centroid.

    Raises:
        InvalidArgumentError: If points is empty
    """
    if not points:
        raise InvalidArgumentError("Points list cannot be empty")

    if len(points) == 1:
        return points[0]

    coords = np.array([[p.latitude, p.longitude] for p in points], dtype=float)
    lat, lng = coords.mean(axis=0)
    return Point(float(lat), float(lng))


def calculate_weighted_centroid(points: Sequence[Point], weights: Sequence[float]) -> Point:
    """
    Weight-weighted arithmetic centroid.

    Raises:
        InvalidArgumentError: If points is empty or lengths differ
    """
    if not points:
        raise InvalidArgumentError("Points list cannot be empty")

    if len(points) != len(weights):
        raise InvalidArgumentError(
            "Points and weights lists must have the same length",
            details={"points": len(points), "weights": len(weights)},
        )

    if len(points) == 1:
        return points[0]

    coords = np.array([[p.latitude, p.longitude] for p in points], dtype=float)
    lat, lng = np.average(coords, axis=0, weights=np.asarray(weights, dtype=float))
    return Point(float(lat), float(lng))
