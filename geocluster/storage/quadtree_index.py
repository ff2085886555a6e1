"""
QuadTree Spatial Index.

Region quadtree over ClusterableItem locations. Leaves split into four
quadrants (NW, NE, SW, SE) at their midpoint once they hold
``max_items_per_node`` items, unless they already sit at ``max_depth``.

The root bounds must cover every item: inserts outside them are silently
dropped, and remove/contains return False.
"""

from typing import Generic, Iterable, List, Optional, Set, TypeVar

from geocluster.core.clusterable_item import ClusterableItem
from geocluster.schemas.data_models import Bounds, Point
from geocluster.storage.spatial_index import SpatialIndex
from geocluster.utils.geometry import calculate_distance

T = TypeVar("T", bound=ClusterableItem)

DEFAULT_MAX_ITEMS_PER_NODE = 10
DEFAULT_MAX_DEPTH = 8


class _QuadTreeNode(Generic[T]):
    """Node owning either a leaf item list or exactly four children."""

    __slots__ = ("bounds", "depth", "items", "children")

    def __init__(self, bounds: Bounds, depth: int):
        self.bounds = bounds
        self.depth = depth
        self.items: List[T] = []
        self.children: Optional[List["_QuadTreeNode[T]"]] = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def insert(self, item: T, max_items_per_node: int, max_depth: int) -> bool:
        if not self.bounds.contains(item.location):
            return False

        if not self.is_leaf:
            return self._insert_into_child(item, max_items_per_node, max_depth)

        if len(self.items) < max_items_per_node or self.depth >= max_depth:
            self.items.append(item)
            return True

        self._split()

        to_redistribute = self.items
        self.items = []
        for existing in to_redistribute:
            self._insert_into_child(existing, max_items_per_node, max_depth)

        return self._insert_into_child(item, max_items_per_node, max_depth)

    def _insert_into_child(self, item: T, max_items_per_node: int, max_depth: int) -> bool:
        for child in self.children:
            if child.insert(item, max_items_per_node, max_depth):
                return True
        return False

    def remove(self, item: T) -> bool:
        if not self.bounds.contains(item.location):
            return False

        if self.is_leaf:
            original_length = len(self.items)
            self.items = [existing for existing in self.items if existing.id != item.id]
            return len(self.items) < original_length

        return any(child.remove(item) for child in self.children)

    def contains(self, item: T) -> bool:
        if not self.bounds.contains(item.location):
            return False

        if self.is_leaf:
            return any(existing.id == item.id for existing in self.items)

        return any(child.contains(item) for child in self.children)

    def find_in_bounds(self, search_bounds: Bounds, result: List[T]) -> None:
        if not self.bounds.intersects(search_bounds):
            return

        if self.is_leaf:
            result.extend(item for item in self.items if search_bounds.contains(item.location))
            return

        for child in self.children:
            child.find_in_bounds(search_bounds, result)

    def collect(self, result: List[T]) -> None:
        if self.is_leaf:
            result.extend(self.items)
            return

        for child in self.children:
            child.collect(result)

    def clear(self) -> None:
        self.items = []
        self.children = None

    def _split(self) -> None:
        ne = self.bounds.north_east
        sw = self.bounds.south_west
        center_lat = (ne.latitude + sw.latitude) / 2
        center_lng = (ne.longitude + sw.longitude) / 2
        depth = self.depth + 1

        north_west = Bounds(
            north_east=Point(ne.latitude, center_lng),
            south_west=Point(center_lat, sw.longitude),
        )
        north_east = Bounds(
            north_east=ne,
            south_west=Point(center_lat, center_lng),
        )
        south_west = Bounds(
            north_east=Point(center_lat, center_lng),
            south_west=sw,
        )
        south_east = Bounds(
            north_east=Point(center_lat, ne.longitude),
            south_west=Point(sw.latitude, center_lng),
        )

        self.children = [
            _QuadTreeNode(north_west, depth),
            _QuadTreeNode(north_east, depth),
            _QuadTreeNode(south_west, depth),
            _QuadTreeNode(south_east, depth),
        ]


class QuadTreeSpatialIndex(SpatialIndex[T]):
    """
    QuadTree implementation of SpatialIndex.

    Nearest-neighbour queries scan every item and sort by geodesic distance;
    they do not prune the tree.
    """

    def __init__(
        self,
        bounds: Bounds,
        max_items_per_node: int = DEFAULT_MAX_ITEMS_PER_NODE,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Initialize quadtree.

        Args:
            bounds: Root region; must cover every item that will be inserted
            max_items_per_node: Leaf capacity before a split
            max_depth: Depth at which leaves stop splitting
        """
        self._root: _QuadTreeNode[T] = _QuadTreeNode(bounds, 0)
        self._max_items_per_node = max_items_per_node
        self._max_depth = max_depth
        self._ids: Set[str] = set()

    def insert(self, item: T) -> None:
        # Ids are unique across the whole tree, not per leaf
        if item.id in self._ids:
            return
        if self._root.insert(item, self._max_items_per_node, self._max_depth):
            self._ids.add(item.id)

    def remove(self, item: T) -> bool:
        if self._root.remove(item):
            self._ids.discard(item.id)
            return True
        return False

    def update(self, item: T) -> None:
        # Removal searches by the item's current location. An item whose stored
        # location differs is not found, so it stays indexed at the old spot and
        # the re-insert is rejected as a duplicate id.
        self.remove(item)
        self.insert(item)

    def clear(self) -> None:
        self._root.clear()
        self._ids.clear()

    def find_nearby(self, point: Point, radius_meters: float) -> List[T]:
        search_bounds = Bounds.from_point_with_radius(point, radius_meters)
        candidates = self.find_in_bounds(search_bounds)

        return [
            item for item in candidates
            if calculate_distance(point, item.location) <= radius_meters
        ]

    def find_in_bounds(self, bounds: Bounds) -> List[T]:
        result: List[T] = []
        self._root.find_in_bounds(bounds, result)
        return result

    def get_all_items(self) -> List[T]:
        result: List[T] = []
        self._root.collect(result)
        return result

    @property
    def size(self) -> int:
        return len(self._ids)

    @property
    def is_empty(self) -> bool:
        return not self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def contains(self, item: T) -> bool:
        return self._root.contains(item)

    def get_bounds(self) -> Optional[Bounds]:
        if self.is_empty:
            return None
        return self._root.bounds

    def find_nearest_neighbor(self, point: Point) -> Optional[T]:
        neighbors = self.find_k_nearest_neighbors(point, 1)
        return neighbors[0] if neighbors else None

    def find_k_nearest_neighbors(self, point: Point, k: int) -> List[T]:
        all_items = self.get_all_items()
        if not all_items or k <= 0:
            return []

        all_items.sort(key=lambda item: calculate_distance(point, item.location))
        return all_items[:k]

    def insert_all(self, items: Iterable[T]) -> None:
        for item in items:
            self.insert(item)

    def remove_all(self, items: Iterable[T]) -> None:
        for item in items:
            self.remove(item)

    def optimize(self) -> None:
        # Splits happen on insert; nothing to rebalance.
        pass
