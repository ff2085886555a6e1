"""
Base Clustering Strategy Interface.

Defines the contract for all geographic clustering strategies.
Strategies are pluggable and selected by name through the ClusteringEngine.
"""

from abc import ABC, abstractmethod
from typing import FrozenSet, Generic, List, Optional, Sequence, TypeVar

from geocluster.core import cluster_utils
from geocluster.core.clusterable_item import ClusterableItem
from geocluster.schemas.data_models import Cluster, ClusteringParameters
from geocluster.utils.advanced_logging import ClusteringLogger, StructlogClusteringLogger

T = TypeVar("T", bound=ClusterableItem)

COMMON_PARAMETERS = frozenset({
    "zoom_level",
    "max_cluster_distance",
    "min_cluster_size",
    "max_cluster_size",
    "distance_weight_factor",
})


class ClusteringStrategy(ABC, Generic[T]):
    """
    Abstract base class for clustering strategies.

    All strategies (distance, density, hierarchical) must inherit from this
    class and implement calculate_clusters(). The pairwise rule, the distance
    threshold and parameter validation have shared defaults.
    """

    #: Registry key used by the engine
    name: str = ""

    #: Human readable summary
    description: str = ""

    def __init__(self, logger: Optional[ClusteringLogger] = None):
        """
        Initialize clustering strategy.

        Args:
            logger: Logger capability (structlog-backed if None)
        """
        self.logger = logger or StructlogClusteringLogger(type(self).__module__)

    @property
    def supported_parameters(self) -> FrozenSet[str]:
        """ClusteringParameters fields this strategy reads."""
        return COMMON_PARAMETERS

    @abstractmethod
    def calculate_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        """
        Group items into clusters.

        Args:
            items: Items to cluster, in a deterministic order
            parameters: Clustering parameters

        Returns:
            Clusters; empty when items is empty
        """
        pass

    def should_cluster_items(self, item1: T, item2: T, parameters: ClusteringParameters) -> bool:
        return cluster_utils.should_cluster_items(item1, item2, parameters)

    def get_cluster_distance_threshold(self, parameters: ClusteringParameters) -> float:
        """Effective clustering radius in meters."""
        return parameters.get_effective_cluster_distance()

    def validate_parameters(self, parameters: ClusteringParameters) -> bool:
        return parameters.is_valid() and parameters.min_cluster_size >= 1

    def _create_individual_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        """One singleton cluster per item, in input order."""
        return [cluster_utils.create_cluster([item], parameters) for item in items]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
