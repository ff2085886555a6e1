"""
Core clustering module.

Exports:
- ClusteringEngine: Main orchestration class
- ClusteringStrategy: Base class for strategies
- ClusterableItem / LocatedItem: Item capability and a plain implementation
- Individual strategy implementations
"""

from geocluster.core.base_clustering import ClusteringStrategy
from geocluster.core.clusterable_item import ClusterableItem, LocatedItem
from geocluster.core.clustering_engine import BUILTIN_STRATEGIES, ClusteringEngine
from geocluster.core.density_algorithm import DensityClusteringStrategy
from geocluster.core.distance_algorithm import DistanceClusteringStrategy
from geocluster.core.hierarchical_algorithm import HierarchicalClusteringStrategy

__all__ = [
    "BUILTIN_STRATEGIES",
    "ClusterableItem",
    "ClusteringEngine",
    "ClusteringStrategy",
    "DensityClusteringStrategy",
    "DistanceClusteringStrategy",
    "HierarchicalClusteringStrategy",
    "LocatedItem",
]
