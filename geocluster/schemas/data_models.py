"""
data_models.py

Data models for the geocluster engine.
Defines geometry primitives, clustering parameters, clusters and result schemas.

Schema Design:
- Geometry: frozen dataclasses (Point, Bounds), hashable and cheap to build
- Configuration: immutable Pydantic model (ClusteringParameters)
- Output: Cluster containers and Pydantic result models for stats/benchmarks
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    TypeVar,
)

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from geocluster.utils.error_handling import InvalidArgumentError

if TYPE_CHECKING:
    from geocluster.core.clusterable_item import ClusterableItem


# Earth radius used when projecting meters onto degrees for bounding boxes
BOUNDS_EARTH_RADIUS_METERS = 6378137.0

# Threshold at the lowest clustering zoom
MAX_CLUSTER_DISTANCE_METERS = 20000.0


# =============================================================================
# GEOMETRY
# =============================================================================


@dataclass(frozen=True)
class Point:
    """Latitude/longitude pair in degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.latitude, "lng": self.longitude}


@dataclass(frozen=True)
class Bounds:
    """
    Axis-aligned lat/lng box.

    Bounds produced by ``from_points`` and ``from_point_with_radius`` always
    satisfy ``north_east >= south_west`` on both axes.
    """

    north_east: Point
    south_west: Point

    @property
    def center(self) -> Point:
        return Point(
            (self.north_east.latitude + self.south_west.latitude) / 2,
            (self.north_east.longitude + self.south_west.longitude) / 2,
        )

    @property
    def latitude_span(self) -> float:
        return self.north_east.latitude - self.south_west.latitude

    @property
    def longitude_span(self) -> float:
        return self.north_east.longitude - self.south_west.longitude

    @property
    def area(self) -> float:
        """Area in square degrees (not geodesic)."""
        return self.latitude_span * self.longitude_span

    def contains(self, point: Point) -> bool:
        return (
            self.south_west.latitude <= point.latitude <= self.north_east.latitude
            and self.south_west.longitude <= point.longitude <= self.north_east.longitude
        )

    def expand_to_include(self, point: Point) -> "Bounds":
        return Bounds(
            north_east=Point(
                max(point.latitude, self.north_east.latitude),
                max(point.longitude, self.north_east.longitude),
            ),
            south_west=Point(
                min(point.latitude, self.south_west.latitude),
                min(point.longitude, self.south_west.longitude),
            ),
        )

    def intersects(self, other: "Bounds") -> bool:
        return not (
            other.south_west.latitude > self.north_east.latitude
            or other.north_east.latitude < self.south_west.latitude
            or other.south_west.longitude > self.north_east.longitude
            or other.north_east.longitude < self.south_west.longitude
        )

    def intersection(self, other: "Bounds") -> Optional["Bounds"]:
        """Overlapping box, or None when the boxes are disjoint."""
        if not self.intersects(other):
            return None

        return Bounds(
            north_east=Point(
                min(self.north_east.latitude, other.north_east.latitude),
                min(self.north_east.longitude, other.north_east.longitude),
            ),
            south_west=Point(
                max(self.south_west.latitude, other.south_west.latitude),
                max(self.south_west.longitude, other.south_west.longitude),
            ),
        )

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(
            north_east=Point(
                max(self.north_east.latitude, other.north_east.latitude),
                max(self.north_east.longitude, other.north_east.longitude),
            ),
            south_west=Point(
                min(self.south_west.latitude, other.south_west.latitude),
                min(self.south_west.longitude, other.south_west.longitude),
            ),
        )

    @classmethod
    def from_points(cls, points: Sequence[Point]) -> "Bounds":
        """
        Smallest box containing every point.

        Raises:
            InvalidArgumentError: If points is empty
        """
        if not points:
            raise InvalidArgumentError("Points list cannot be empty")

        latitudes = [p.latitude for p in points]
        longitudes = [p.longitude for p in points]

        return cls(
            north_east=Point(max(latitudes), max(longitudes)),
            south_west=Point(min(latitudes), min(longitudes)),
        )

    @classmethod
    def from_point_with_radius(cls, point: Point, radius_meters: float) -> "Bounds":
        """Box around a point, projecting the radius onto degrees at its latitude."""
        lat_radians = math.radians(point.latitude)

        delta_lat = math.degrees(radius_meters / BOUNDS_EARTH_RADIUS_METERS)
        delta_lng = math.degrees(
            radius_meters / (BOUNDS_EARTH_RADIUS_METERS * math.cos(lat_radians))
        )

        return cls(
            north_east=Point(point.latitude + delta_lat, point.longitude + delta_lng),
            south_west=Point(point.latitude - delta_lat, point.longitude - delta_lng),
        )

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "north_east": self.north_east.to_dict(),
            "south_west": self.south_west.to_dict(),
        }


# =============================================================================
# CLUSTERING PARAMETERS
# =============================================================================


class ClusteringParameters(BaseModel):
    """
    Configuration controlling every clustering strategy.

    Construction never rejects a combination of values; validity is checked
    by ``is_valid`` / ``validation_errors`` so callers can report it.
    """

    model_config = ConfigDict(frozen=True)

    zoom_level: float = Field(default=14.0, description="Current map zoom level")
    max_cluster_distance: Optional[float] = Field(
        default=None, description="Explicit clustering radius in meters (overrides zoom)"
    )
    min_cluster_size: int = Field(default=2, description="Minimum items to form a cluster")
    max_cluster_size: Optional[int] = Field(default=None, description="Maximum items per cluster")
    enable_incremental_clustering: bool = Field(default=True, description="Allow incremental re-clustering")
    enable_spatial_indexing: bool = Field(default=True, description="Use the quadtree for neighbour queries")
    custom_parameters: Dict[str, Any] = Field(default_factory=dict, description="Strategy-specific extras")
    individual_items_zoom_threshold: float = Field(default=16.0, description="Show individual items at or above this zoom")
    max_clustering_zoom_threshold: float = Field(default=16.0, description="Zoom where the radius reaches zero")
    min_clustering_zoom_threshold: float = Field(default=4.0, description="No clustering at or below this zoom")
    distance_weight_factor: float = Field(default=1.0, description="Weight factor for distance calculations")
    enable_temporal_clustering: bool = Field(default=False, description="Only cluster items close in time")
    temporal_clustering_window: int = Field(default=60, description="Temporal window in minutes")
    enable_category_clustering: bool = Field(default=False, description="Only cluster items of equal category")

    def copy_with(self, **overrides: Any) -> "ClusteringParameters":
        """Return a copy with the given fields replaced."""
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise InvalidArgumentError(
                f"Unknown clustering parameters: {sorted(unknown)}",
                details={"unknown": sorted(unknown)},
            )
        return self.model_copy(update=overrides)

    def get_effective_cluster_distance(self) -> float:
        """
        Clustering radius in meters.

        Uses ``max_cluster_distance`` when set. Otherwise the zoom level is
        normalized into [min_clustering_zoom, max_clustering_zoom] and the
        radius falls off quadratically from 20km to 0.
        """
        if self.max_cluster_distance is not None:
            return self.max_cluster_distance

        span = self.max_clustering_zoom_threshold - self.min_clustering_zoom_threshold
        if span <= 0:
            normalized = 1.0 if self.zoom_level >= self.max_clustering_zoom_threshold else 0.0
        else:
            normalized = (self.zoom_level - self.min_clustering_zoom_threshold) / span
        clamped = min(max(normalized, 0.0), 1.0)

        return MAX_CLUSTER_DISTANCE_METERS * (1 - clamped * clamped)

    def validation_errors(self) -> Dict[str, str]:
        """
        Validate parameter combination.

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        if self.zoom_level < 0:
            errors["zoom_level"] = "Must be >= 0"

        if self.min_cluster_size < 1:
            errors["min_cluster_size"] = "Must be >= 1"

        if self.max_cluster_size is not None and self.max_cluster_size < self.min_cluster_size:
            errors["max_cluster_size"] = "Must be >= min_cluster_size"

        if self.individual_items_zoom_threshold < 0:
            errors["individual_items_zoom_threshold"] = "Must be >= 0"

        if self.max_clustering_zoom_threshold < self.min_clustering_zoom_threshold:
            errors["max_clustering_zoom_threshold"] = "Must be >= min_clustering_zoom_threshold"

        if self.distance_weight_factor <= 0:
            errors["distance_weight_factor"] = "Must be > 0"

        if self.temporal_clustering_window <= 0:
            errors["temporal_clustering_window"] = "Must be > 0"

        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()


# =============================================================================
# CLUSTER
# =============================================================================


T = TypeVar("T", bound="ClusterableItem")


class Cluster(Generic[T]):
    """
    Group of items produced by a clustering strategy.

    Clusters are never mutated once built. Merging or splitting produces new
    clusters (see ``geocluster.core.cluster_utils``).
    """

    def __init__(
        self,
        id: str,
        center: Point,
        items: Sequence[T],
        zoom_level: float,
        is_expanded: bool = False,
        metadata: Optional[Mapping[str, Any]] = None,
        created_at: Optional[datetime] = None,
        bounds: Optional[Bounds] = None,
    ):
        if not items:
            raise InvalidArgumentError("Items list cannot be empty")

        self._id = id
        self._center = center
        self._items = tuple(items)
        self._zoom_level = zoom_level
        self._is_expanded = is_expanded
        self._metadata = dict(metadata or {})
        self._created_at = created_at or datetime.now()
        self._bounds = bounds

    @property
    def id(self) -> str:
        return self._id

    @property
    def center(self) -> Point:
        return self._center

    @property
    def items(self) -> tuple:
        """Members in the order the strategy added them."""
        return self._items

    @property
    def zoom_level(self) -> float:
        return self._zoom_level

    @property
    def is_expanded(self) -> bool:
        return self._is_expanded

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def bounds(self) -> Optional[Bounds]:
        return self._bounds

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def is_single_item(self) -> bool:
        return self.count == 1

    @property
    def first_item(self) -> T:
        return self._items[0]

    @property
    def total_weight(self) -> float:
        return float(sum(item.weight for item in self._items))

    @property
    def average_weight(self) -> float:
        return self.total_weight / self.count

    @property
    def categories(self) -> Set[str]:
        return {item.category for item in self._items if item.category is not None}

    def copy_with(self, **changes: Any) -> "Cluster[T]":
        """Create a copy of this cluster with the given changes."""
        fields = {
            "id": self._id,
            "center": self._center,
            "items": self._items,
            "zoom_level": self._zoom_level,
            "is_expanded": self._is_expanded,
            "metadata": self._metadata,
            "created_at": self._created_at,
            "bounds": self._bounds,
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise InvalidArgumentError(f"Unknown cluster fields: {sorted(unknown)}")
        fields.update(changes)
        return Cluster(**fields)

    def calculate_bounds(self) -> Bounds:
        return Bounds.from_points([item.location for item in self._items])

    def calculate_centroid(self) -> Point:
        """Weight-weighted centroid of the member locations."""
        coords = np.array(
            [[item.location.latitude, item.location.longitude] for item in self._items],
            dtype=float,
        )
        weights = np.array([item.weight for item in self._items], dtype=float)
        lat, lng = np.average(coords, axis=0, weights=weights)
        return Point(float(lat), float(lng))

    def calculate_average_distance(self) -> float:
        """Mean pairwise distance between members in meters."""
        if self.count <= 1:
            return 0.0

        distances = [
            self._items[i].distance_to(self._items[j])
            for i in range(self.count)
            for j in range(i + 1, self.count)
        ]
        return float(np.mean(distances))

    def calculate_max_distance(self) -> float:
        if self.count <= 1:
            return 0.0

        return max(
            self._items[i].distance_to(self._items[j])
            for i in range(self.count)
            for j in range(i + 1, self.count)
        )

    def contains_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self._items)

    def find_item(self, item_id: str) -> Optional[T]:
        return next((item for item in self._items if item.id == item_id), None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self._id,
            "center": self._center.to_dict(),
            "count": self.count,
            "item_ids": [item.id for item in self._items],
            "zoom_level": self._zoom_level,
            "is_expanded": self._is_expanded,
            "total_weight": self.total_weight,
            "categories": sorted(self.categories),
            "metadata": dict(self._metadata),
            "created_at": self._created_at.isoformat(),
            "bounds": self._bounds.to_dict() if self._bounds else None,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"Cluster(id={self._id}, count={self.count}, "
            f"center={self._center}, zoom_level={self._zoom_level})"
        )


def generate_cluster_id() -> str:
    """Generate a globally unique cluster identifier."""
    return str(uuid.uuid4())


# =============================================================================
# RESULT MODELS
# =============================================================================


class ClusteringStats(BaseModel):
    """Summary statistics over a list of clusters."""

    total_clusters: int = 0
    total_items: int = 0
    average_cluster_size: float = 0.0
    largest_cluster_size: int = 0
    smallest_cluster_size: int = 0
    single_item_clusters: int = 0
    multi_item_clusters: int = 0


class PerformanceStats(ClusteringStats):
    """Clustering statistics plus timing for a single run."""

    processing_time_ms: float = Field(..., ge=0.0)
    items_per_second: float = 0.0
    compression_ratio: float = 0.0
    average_distance_reduction: float = 0.0


class StrategyBenchmark(BaseModel):
    """Outcome of benchmarking one strategy."""

    strategy: str
    success: bool
    processing_time_ms: float = 0.0
    cluster_count: int = 0
    item_count: int = 0
    compression_ratio: float = 0.0
    average_cluster_size: float = 0.0
    error: Optional[str] = None
    error_type: Optional[str] = None


class EngineStats(BaseModel):
    """Snapshot of engine registry state."""

    current_strategy: Optional[str] = None
    available_strategies: List[str] = Field(default_factory=list)
    supported_parameters: Optional[List[str]] = None
