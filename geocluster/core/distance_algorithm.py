"""
Distance-Based Clustering Strategy.

Greedy single-pass grouping by distance threshold:
- Each unprocessed item seeds a cluster and absorbs every unprocessed item
  that may cluster with it (one hop from the seed, no transitive closure)
- Large inputs query a quadtree instead of scanning all pairs
- Supports incremental re-clustering when new items arrive
"""

from typing import FrozenSet, List, Optional, Sequence, Set

from geocluster.core import cluster_utils
from geocluster.core.base_clustering import COMMON_PARAMETERS, ClusteringStrategy, T
from geocluster.schemas.data_models import Cluster, ClusteringParameters, PerformanceStats
from geocluster.storage.quadtree_index import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_ITEMS_PER_NODE,
    QuadTreeSpatialIndex,
)
from geocluster.utils.advanced_logging import ClusteringLogger, PerformanceLogger
from geocluster.utils.geometry import calculate_distance

# Inputs larger than this use the quadtree when spatial indexing is enabled
DEFAULT_SPATIAL_INDEX_THRESHOLD = 100

# Multiple of the threshold within which an existing cluster counts as affected
AFFECTED_RADIUS_FACTOR = 2.0


class DistanceClusteringStrategy(ClusteringStrategy[T]):
    """
    Distance-threshold clustering with spatial index acceleration.

    Best for: interactive map display, frequent re-clustering
    Strengths: fast, predictable, supports incremental updates
    Weaknesses: greedy, result depends on input order
    """

    name = "distance"
    description = "Clusters items based on distance threshold with spatial indexing optimization"

    def __init__(
        self,
        logger: Optional[ClusteringLogger] = None,
        max_items_per_node: int = DEFAULT_MAX_ITEMS_PER_NODE,
        max_depth: int = DEFAULT_MAX_DEPTH,
        spatial_index_threshold: int = DEFAULT_SPATIAL_INDEX_THRESHOLD,
    ):
        """
        Initialize distance strategy.

        Args:
            logger: Logger capability
            max_items_per_node: Quadtree leaf capacity
            max_depth: Quadtree maximum depth
            spatial_index_threshold: Item count above which the quadtree is used
        """
        super().__init__(logger)
        self.max_items_per_node = max_items_per_node
        self.max_depth = max_depth
        self.spatial_index_threshold = spatial_index_threshold

    @property
    def supported_parameters(self) -> FrozenSet[str]:
        return COMMON_PARAMETERS | {"enable_spatial_indexing", "enable_incremental_clustering"}

    def validate_parameters(self, parameters: ClusteringParameters) -> bool:
        return parameters.is_valid()

    def calculate_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        if not items:
            return []

        if not cluster_utils.should_enable_clustering(items, parameters):
            return self._create_individual_clusters(items, parameters)

        use_index = (
            parameters.enable_spatial_indexing
            and len(items) > self.spatial_index_threshold
        )

        with PerformanceLogger(
            "distance_clustering",
            logger=self.logger,
            item_count=len(items),
            spatial_index=use_index,
        ) as perf:
            if use_index:
                clusters = self._cluster_with_spatial_index(items, parameters)
            else:
                clusters = self._cluster_pairwise(items, parameters)

        self.logger.info(
            "distance_clustering_completed",
            item_count=len(items),
            cluster_count=len(clusters),
            duration_ms=round(perf.elapsed_ms, 3),
        )

        return clusters

    def _cluster_with_spatial_index(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        spatial_index: QuadTreeSpatialIndex[T] = QuadTreeSpatialIndex(
            cluster_utils.calculate_items_bounds(items),
            max_items_per_node=self.max_items_per_node,
            max_depth=self.max_depth,
        )
        spatial_index.insert_all(items)

        clusters: List[Cluster[T]] = []
        processed: Set[str] = set()
        threshold = self.get_cluster_distance_threshold(parameters)

        for item in items:
            if item.id in processed:
                continue

            cluster_items = [item]
            processed.add(item.id)

            for candidate in spatial_index.find_nearby(item.location, threshold):
                if candidate.id in processed:
                    continue
                if self.should_cluster_items(item, candidate, parameters):
                    cluster_items.append(candidate)
                    processed.add(candidate.id)

            self._emit_cluster(cluster_items, parameters, clusters)

        return clusters

    def _cluster_pairwise(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        clusters: List[Cluster[T]] = []
        processed: Set[str] = set()

        for i, seed in enumerate(items):
            if seed.id in processed:
                continue

            cluster_items = [seed]
            processed.add(seed.id)

            for candidate in items[i + 1:]:
                if candidate.id in processed:
                    continue
                if self.should_cluster_items(seed, candidate, parameters):
                    cluster_items.append(candidate)
                    processed.add(candidate.id)

            self._emit_cluster(cluster_items, parameters, clusters)

        return clusters

    def _emit_cluster(
        self,
        cluster_items: List[T],
        parameters: ClusteringParameters,
        clusters: List[Cluster[T]],
    ) -> None:
        """Append a candidate that passes the size rules, splitting it if oversized."""
        # Candidates between 2 and min_cluster_size - 1 items are discarded
        # along with their members.
        if len(cluster_items) < parameters.min_cluster_size and len(cluster_items) != 1:
            self.logger.debug(
                "candidate_cluster_discarded",
                size=len(cluster_items),
                min_cluster_size=parameters.min_cluster_size,
            )
            return

        cluster = cluster_utils.create_cluster(cluster_items, parameters)

        if parameters.max_cluster_size is not None and cluster.count > parameters.max_cluster_size:
            clusters.extend(cluster_utils.split_cluster(cluster, parameters))
        else:
            clusters.append(cluster)

    def calculate_incremental_clusters(
        self,
        existing_items: Sequence[T],
        new_items: Sequence[T],
        existing_clusters: Sequence[Cluster[T]],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        """
        Re-cluster only the neighbourhood of newly added items.

        An existing cluster is affected when its center lies within twice the
        effective threshold of any new item. Members of affected clusters are
        pooled with the new items and clustered from scratch; unaffected
        clusters pass through unchanged, ahead of the fresh ones.

        The 2x radius is an approximation: a cluster further away can still
        end up mergeable through a chain of new items, and is not revisited.

        Args:
            existing_items: Items already clustered (not consulted; clusters carry their members)
            new_items: Newly added items
            existing_clusters: Current clustering
            parameters: Clustering parameters

        Returns:
            Updated cluster list (``existing_clusters`` as-is if no new items)
        """
        if not new_items:
            return list(existing_clusters)

        self.logger.info(
            "incremental_clustering_started",
            new_item_count=len(new_items),
            existing_cluster_count=len(existing_clusters),
        )

        affected_radius = self.get_cluster_distance_threshold(parameters) * AFFECTED_RADIUS_FACTOR

        affected_ids: Set[str] = set()
        affected_items: List[T] = []
        for cluster in existing_clusters:
            if cluster.id in affected_ids:
                continue
            if any(
                calculate_distance(new_item.location, cluster.center) <= affected_radius
                for new_item in new_items
            ):
                affected_ids.add(cluster.id)
                affected_items.extend(cluster.items)

        affected_items.extend(new_items)

        new_clusters = self.calculate_clusters(affected_items, parameters)
        unaffected = [cluster for cluster in existing_clusters if cluster.id not in affected_ids]

        self.logger.info(
            "incremental_clustering_completed",
            affected_cluster_count=len(affected_ids),
            reclustered_item_count=len(affected_items),
            cluster_count=len(unaffected) + len(new_clusters),
        )

        return unaffected + new_clusters

    def calculate_performance_stats(
        self,
        items: Sequence[T],
        clusters: Sequence[Cluster[T]],
        processing_time_seconds: float,
    ) -> PerformanceStats:
        """
        Clustering statistics plus throughput for one run.

        Args:
            items: Input items
            clusters: Clusters produced from them
            processing_time_seconds: Wall-clock duration of the run

        Returns:
            PerformanceStats
        """
        stats = cluster_utils.calculate_clustering_stats(clusters)

        return PerformanceStats(
            **stats.model_dump(),
            processing_time_ms=processing_time_seconds * 1000,
            items_per_second=(
                len(items) / processing_time_seconds if processing_time_seconds > 0 else 0.0
            ),
            compression_ratio=len(clusters) / len(items) if items else 0.0,
            average_distance_reduction=self._calculate_average_distance_reduction(clusters),
        )

    @staticmethod
    def _calculate_average_distance_reduction(clusters: Sequence[Cluster[T]]) -> float:
        """Mean intra-cluster spread over multi-item clusters, which render as one marker."""
        spreads = [cluster.calculate_average_distance() for cluster in clusters if cluster.count > 1]
        return sum(spreads) / len(spreads) if spreads else 0.0
