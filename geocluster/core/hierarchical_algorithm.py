"""
Hierarchical (Agglomerative) Clustering Strategy.

Bottom-up single-linkage clustering bounded by the effective distance
threshold. Starts from one cluster per item and repeatedly merges the
globally closest pair until no pair is within the threshold.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from geocluster.core import cluster_utils
from geocluster.core.base_clustering import ClusteringStrategy, T
from geocluster.schemas.data_models import Cluster, ClusteringParameters
from geocluster.utils.advanced_logging import PerformanceLogger


class HierarchicalClusteringStrategy(ClusteringStrategy[T]):
    """
    Agglomerative single-linkage clustering.

    Best for: small to moderate inputs where chained groups matter
    Strengths: order-independent merge choice, chains nearby items
    Weaknesses: O(n^3) worst case; not suitable for large inputs

    Clusters smaller than min_cluster_size after merging are dropped from
    the output together with their items; they are not re-emitted as
    singletons.
    """

    name = "hierarchical"
    description = "Agglomerative single-linkage clustering bounded by distance threshold"

    def calculate_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        if not items:
            return []

        threshold = self.get_cluster_distance_threshold(parameters)

        with PerformanceLogger(
            "hierarchical_clustering",
            logger=self.logger,
            item_count=len(items),
            threshold_m=threshold,
        ):
            distances = self._item_distance_matrix(items)

            # Parallel lists: each cluster and the input indices of its members
            clusters = self._create_individual_clusters(items, parameters)
            members: List[List[int]] = [[i] for i in range(len(items))]

            while len(clusters) > 1:
                pair = self._find_closest_pair(members, distances, threshold)
                if pair is None:
                    break

                i, j = pair
                merged = cluster_utils.merge_clusters(clusters[i], clusters[j], parameters)
                merged_members = members[i] + members[j]

                del clusters[j], members[j]
                del clusters[i], members[i]
                clusters.append(merged)
                members.append(merged_members)

            kept = [cluster for cluster in clusters if cluster.count >= parameters.min_cluster_size]

        dropped = len(clusters) - len(kept)
        if dropped:
            self.logger.debug(
                "small_clusters_dropped",
                dropped_cluster_count=dropped,
                min_cluster_size=parameters.min_cluster_size,
            )

        self.logger.info(
            "hierarchical_clustering_completed",
            item_count=len(items),
            cluster_count=len(kept),
        )

        return kept

    @staticmethod
    def _item_distance_matrix(items: Sequence[T]) -> np.ndarray:
        """Symmetric matrix of item.distance_to for every pair."""
        n = len(items)
        distances = np.zeros((n, n), dtype=float)
        for i in range(n):
            for j in range(i + 1, n):
                distances[i, j] = distances[j, i] = items[i].distance_to(items[j])
        return distances

    @staticmethod
    def _find_closest_pair(
        members: List[List[int]],
        distances: np.ndarray,
        threshold: float,
    ) -> Optional[Tuple[int, int]]:
        """
        Indices of the closest cluster pair within threshold.

        Single linkage: the distance between two clusters is the smallest
        distance between any member of one and any member of the other.
        The first pair in scan order wins ties.
        """
        best = None
        min_distance = float("inf")

        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                distance = float(distances[np.ix_(members[i], members[j])].min())
                if distance < min_distance and distance <= threshold:
                    min_distance = distance
                    best = (i, j)

        return best
