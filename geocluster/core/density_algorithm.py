"""
Density-Based Clustering Strategy (DBSCAN-like).

Density-reachability clustering over the effective distance threshold:
- Core points have at least min_cluster_size neighbours
- Clusters grow breadth-first through core points
- Noise points are emitted as singleton clusters
"""

from collections import deque
from typing import List, Sequence, Set

from geocluster.core import cluster_utils
from geocluster.core.base_clustering import ClusteringStrategy, T
from geocluster.schemas.data_models import Cluster, ClusteringParameters
from geocluster.utils.advanced_logging import PerformanceLogger


class DensityClusteringStrategy(ClusteringStrategy[T]):
    """
    DBSCAN-style clustering.

    Best for: irregularly shaped groups, inputs with scattered outliers
    Strengths: no cluster count needed, chains dense regions together
    Weaknesses: O(n^2) neighbour search, sensitive to the threshold
    """

    name = "density"
    description = "Clusters items based on density using a DBSCAN-like algorithm"

    def calculate_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        """
        Cluster items by density reachability.

        Neighbourhoods are distance-only; compatibility predicates are not
        consulted. Every item ends up in exactly one cluster: the seed core
        point is claimed first, then its reachable neighbours.

        Args:
            items: Items to cluster
            parameters: Clustering parameters (min_cluster_size is the core threshold)

        Returns:
            Clusters in discovery order
        """
        if not items:
            return []

        threshold = self.get_cluster_distance_threshold(parameters)
        min_points = parameters.min_cluster_size

        clusters: List[Cluster[T]] = []
        visited: Set[str] = set()
        clustered: Set[str] = set()

        with PerformanceLogger(
            "density_clustering",
            logger=self.logger,
            item_count=len(items),
            threshold_m=threshold,
        ):
            for item in items:
                if item.id in visited:
                    continue

                visited.add(item.id)
                neighbors = self._get_neighbors(item, items, threshold)

                if len(neighbors) < min_points:
                    if item.id not in clustered:
                        clusters.append(cluster_utils.create_cluster([item], parameters))
                        clustered.add(item.id)
                    continue

                cluster_items = [item]
                clustered.add(item.id)

                queue = deque(neighbors)
                while queue:
                    neighbor = queue.popleft()

                    if neighbor.id not in visited:
                        visited.add(neighbor.id)
                        neighbor_neighbors = self._get_neighbors(neighbor, items, threshold)
                        if len(neighbor_neighbors) >= min_points:
                            queue.extend(neighbor_neighbors)

                    if neighbor.id not in clustered:
                        cluster_items.append(neighbor)
                        clustered.add(neighbor.id)

                clusters.append(cluster_utils.create_cluster(cluster_items, parameters))

        self.logger.info(
            "density_clustering_completed",
            item_count=len(items),
            cluster_count=len(clusters),
        )

        return clusters

    @staticmethod
    def _get_neighbors(item: T, items: Sequence[T], threshold: float) -> List[T]:
        """Every other item within ``threshold`` meters, in input order."""
        return [
            other for other in items
            if other.id != item.id and item.distance_to(other) <= threshold
        ]
