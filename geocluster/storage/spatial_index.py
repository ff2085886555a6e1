"""
Spatial Index Interface.

Defines the contract for in-memory spatial indexes over ClusterableItem.
An index is built and queried within a single clustering invocation and is
not safe for concurrent mutation.
"""

from abc import ABC, abstractmethod
from typing import Generic, Iterable, List, Optional, TypeVar

from geocluster.core.clusterable_item import ClusterableItem
from geocluster.schemas.data_models import Bounds, Point

T = TypeVar("T", bound=ClusterableItem)


class SpatialIndex(ABC, Generic[T]):
    """Abstract base class for spatial indexes."""

    @abstractmethod
    def insert(self, item: T) -> None:
        """Insert an item. Items outside the index bounds are ignored."""

    @abstractmethod
    def remove(self, item: T) -> bool:
        """Remove an item by id. Returns True if something was removed."""

    @abstractmethod
    def update(self, item: T) -> None:
        """Re-index an item under its current location."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def find_nearby(self, point: Point, radius_meters: float) -> List[T]:
        """Items within ``radius_meters`` of ``point``."""

    @abstractmethod
    def find_in_bounds(self, bounds: Bounds) -> List[T]:
        """Items whose location lies inside ``bounds``."""

    @abstractmethod
    def get_all_items(self) -> List[T]:
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        pass

    @property
    @abstractmethod
    def is_empty(self) -> bool:
        pass

    @abstractmethod
    def contains(self, item: T) -> bool:
        pass

    @abstractmethod
    def get_bounds(self) -> Optional[Bounds]:
        """Bounds covered by the index, or None when empty."""

    @abstractmethod
    def find_nearest_neighbor(self, point: Point) -> Optional[T]:
        pass

    @abstractmethod
    def find_k_nearest_neighbors(self, point: Point, k: int) -> List[T]:
        """Up to ``k`` items ordered by ascending distance."""

    @abstractmethod
    def insert_all(self, items: Iterable[T]) -> None:
        pass

    @abstractmethod
    def remove_all(self, items: Iterable[T]) -> None:
        pass

    @abstractmethod
    def optimize(self) -> None:
        """Rebuild or rebalance the index, if the implementation needs it."""
