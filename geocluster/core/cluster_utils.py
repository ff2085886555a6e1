"""
Cluster Utilities.

Helpers shared by every clustering strategy: cluster construction, merge and
split, the pairwise compatibility rule, the suppression rule, item filters
and summary statistics.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypeVar

from geocluster.core.clusterable_item import ClusterableItem
from geocluster.schemas.data_models import (
    Bounds,
    Cluster,
    ClusteringParameters,
    ClusteringStats,
    Point,
    generate_cluster_id,
)
from geocluster.utils.error_handling import InvalidArgumentError
from geocluster.utils.geometry import calculate_weighted_centroid

T = TypeVar("T", bound=ClusterableItem)

# Items per square degree above which larger minimum clusters are suggested
HIGH_DENSITY_THRESHOLD = 0.001


def calculate_optimal_distance_threshold(parameters: ClusteringParameters) -> float:
    return parameters.get_effective_cluster_distance()


def calculate_items_centroid(items: Sequence[T]) -> Point:
    """
    Weight-weighted centroid of item locations.

    Raises:
        InvalidArgumentError: If items is empty
    """
    if not items:
        raise InvalidArgumentError("Items list cannot be empty")

    if len(items) == 1:
        return items[0].location

    return calculate_weighted_centroid(
        [item.location for item in items],
        [item.weight for item in items],
    )


def calculate_items_bounds(items: Sequence[T]) -> Bounds:
    """
    Bounding box of item locations.

    Raises:
        InvalidArgumentError: If items is empty
    """
    if not items:
        raise InvalidArgumentError("Items list cannot be empty")

    return Bounds.from_points([item.location for item in items])


def minutes_between(first: datetime, second: datetime) -> int:
    """Whole minutes between two timestamps, truncated."""
    return int(abs((first - second).total_seconds()) // 60)


def should_cluster_items(item1: T, item2: T, parameters: ClusteringParameters) -> bool:
    """
    Decide whether two items may share a cluster.

    Both items must be within the effective threshold and accept each other.
    Category and temporal constraints apply only when enabled; the temporal
    check is skipped when either timestamp is missing.
    """
    distance = item1.distance_to(item2)
    if distance > calculate_optimal_distance_threshold(parameters):
        return False

    if not item1.should_cluster_with(item2) or not item2.should_cluster_with(item1):
        return False

    if parameters.enable_category_clustering and item1.category != item2.category:
        return False

    if parameters.enable_temporal_clustering:
        timestamp1 = item1.timestamp
        timestamp2 = item2.timestamp
        if timestamp1 is not None and timestamp2 is not None:
            if minutes_between(timestamp1, timestamp2) > parameters.temporal_clustering_window:
                return False

    return True


def create_cluster(items: Sequence[T], parameters: ClusteringParameters) -> Cluster[T]:
    """
    Build a cluster around the weighted centroid of ``items``.

    Single-item clusters are marked expanded.

    Raises:
        InvalidArgumentError: If items is empty
    """
    if not items:
        raise InvalidArgumentError("Items list cannot be empty")

    return Cluster(
        id=generate_cluster_id(),
        center=calculate_items_centroid(items),
        items=list(items),
        zoom_level=parameters.zoom_level,
        is_expanded=len(items) == 1,
    )


def merge_clusters(
    cluster1: Cluster[T],
    cluster2: Cluster[T],
    parameters: ClusteringParameters,
) -> Cluster[T]:
    """New cluster holding the members of both, first cluster's items first."""
    return create_cluster([*cluster1.items, *cluster2.items], parameters)


def split_cluster(cluster: Cluster[T], parameters: ClusteringParameters) -> List[Cluster[T]]:
    """
    Split an oversized cluster into chunks of at most ``max_cluster_size``.

    Chunks keep the original member order; the last one may be smaller.
    Clusters no larger than ``min_cluster_size``, or within the maximum,
    are returned unchanged.
    """
    if cluster.count <= parameters.min_cluster_size:
        return [cluster]

    max_cluster_size = parameters.max_cluster_size
    if max_cluster_size is None or cluster.count <= max_cluster_size:
        return [cluster]

    return [
        create_cluster(group, parameters)
        for group in _split_items_into_groups(list(cluster.items), max_cluster_size)
    ]


def _split_items_into_groups(items: List[T], max_group_size: int) -> List[List[T]]:
    return [items[i:i + max_group_size] for i in range(0, len(items), max_group_size)]


def should_enable_clustering(items: Sequence[T], parameters: ClusteringParameters) -> bool:
    """
    Suppression rule.

    Clustering is off when there are fewer items than ``min_cluster_size``,
    when zoomed in to the individual-items threshold, or when zoomed out to
    the minimum clustering zoom.
    """
    if len(items) < parameters.min_cluster_size:
        return False

    if parameters.zoom_level >= parameters.individual_items_zoom_threshold:
        return False

    if parameters.zoom_level <= parameters.min_clustering_zoom_threshold:
        return False

    return True


def filter_items_by_bounds(items: Sequence[T], bounds: Bounds) -> List[T]:
    return [item for item in items if bounds.contains(item.location)]


def filter_items_by_category(items: Sequence[T], category: str) -> List[T]:
    return [item for item in items if item.category == category]


def filter_items_by_time_range(
    items: Sequence[T],
    start_time: datetime,
    end_time: datetime,
) -> List[T]:
    """Items strictly between the two instants; untimestamped items are excluded."""
    return [
        item for item in items
        if item.timestamp is not None and start_time < item.timestamp < end_time
    ]


def calculate_density(items: Sequence[T], bounds: Bounds) -> float:
    """Items inside ``bounds`` per square degree."""
    if not items or bounds.area == 0:
        return 0.0

    return len(filter_items_by_bounds(items, bounds)) / bounds.area


def find_nearest_neighbors(items: Sequence[T]) -> Dict[str, Optional[T]]:
    """Map each item id to its nearest other item (None for a lone item)."""
    neighbors: Dict[str, Optional[T]] = {}

    for item in items:
        nearest = None
        min_distance = float("inf")

        for other in items:
            if other.id == item.id:
                continue

            distance = item.distance_to(other)
            if distance < min_distance:
                min_distance = distance
                nearest = other

        neighbors[item.id] = nearest

    return neighbors


def calculate_average_distance(items: Sequence[T]) -> float:
    """Mean pairwise distance in meters (0 for fewer than two items)."""
    if len(items) <= 1:
        return 0.0

    total_distance = 0.0
    pair_count = 0

    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            total_distance += items[i].distance_to(items[j])
            pair_count += 1

    return total_distance / pair_count


def suggest_optimal_parameters(items: Sequence[T], zoom_level: float) -> ClusteringParameters:
    """
    Derive parameters from the data itself.

    The radius is twice the mean pairwise distance; dense inputs get a
    minimum cluster size of 3.
    """
    if not items:
        return ClusteringParameters(zoom_level=zoom_level)

    suggested_max_distance = calculate_average_distance(items) * 2

    density = calculate_density(items, calculate_items_bounds(items))
    suggested_min_cluster_size = 3 if density > HIGH_DENSITY_THRESHOLD else 2

    return ClusteringParameters(
        zoom_level=zoom_level,
        max_cluster_distance=suggested_max_distance,
        min_cluster_size=suggested_min_cluster_size,
        enable_spatial_indexing=len(items) > 100,
        enable_incremental_clustering=len(items) > 50,
    )


def calculate_clustering_stats(clusters: Sequence[Cluster]) -> ClusteringStats:
    """Summarize cluster sizes."""
    if not clusters:
        return ClusteringStats()

    sizes = [cluster.count for cluster in clusters]
    total_items = sum(sizes)
    single_item_clusters = sum(1 for cluster in clusters if cluster.is_single_item)

    return ClusteringStats(
        total_clusters=len(clusters),
        total_items=total_items,
        average_cluster_size=total_items / len(clusters),
        largest_cluster_size=max(sizes),
        smallest_cluster_size=min(sizes),
        single_item_clusters=single_item_clusters,
        multi_item_clusters=len(clusters) - single_item_clusters,
    )
