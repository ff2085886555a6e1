"""
Clusterable item contract.

Every strategy, the spatial index and the engine operate on objects that
implement ClusterableItem. The core never mutates items.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from geocluster.schemas.data_models import Point
from geocluster.utils.geometry import calculate_distance


class ClusterableItem(ABC):
    """
    Abstract base class for anything that can be clustered by location.

    Subclasses must provide ``id`` and ``location``. Everything else has a
    default that can be overridden.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Identifier, unique within a clustering run."""

    @property
    @abstractmethod
    def location(self) -> Point:
        """Item location."""

    @property
    def weight(self) -> float:
        return 1.0

    @property
    def metadata(self) -> Mapping[str, Any]:
        return MappingProxyType({})

    @property
    def timestamp(self) -> Optional[datetime]:
        return None

    @property
    def category(self) -> Optional[str]:
        return None

    def should_cluster_with(self, other: "ClusterableItem") -> bool:
        """Override for custom compatibility rules."""
        return True

    def distance_to(self, other: "ClusterableItem") -> float:
        """Distance to another item in meters (geodesic by default)."""
        return calculate_distance(self.location, other.location)


class LocatedItem(ClusterableItem):
    """Plain ClusterableItem carrying its values directly."""

    def __init__(
        self,
        id: str,
        location: Point,
        weight: float = 1.0,
        category: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self._id = id
        self._location = location
        self._weight = weight
        self._category = category
        self._timestamp = timestamp
        self._metadata = MappingProxyType(dict(metadata or {}))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocatedItem":
        """
        Build an item from ``{id, lat, lng, weight?, category?, timestamp?}``.

        ``timestamp`` may be an ISO-8601 string or a datetime.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            id=str(data["id"]),
            location=Point(float(data["lat"]), float(data["lng"])),
            weight=float(data.get("weight", 1.0)),
            category=data.get("category"),
            timestamp=timestamp,
            metadata=data.get("metadata"),
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def location(self) -> Point:
        return self._location

    @property
    def weight(self) -> float:
        return self._weight

    @property
    def category(self) -> Optional[str]:
        return self._category

    @property
    def timestamp(self) -> Optional[datetime]:
        return self._timestamp

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._metadata

    def __repr__(self) -> str:
        return f"LocatedItem(id={self._id!r}, location={self._location})"
