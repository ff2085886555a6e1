"""
geocluster

Zoom-aware clustering of geographically located items with pluggable
strategies (distance, density, hierarchical) and a quadtree spatial index.
"""

import logging

from geocluster.core import (
    ClusterableItem,
    ClusteringEngine,
    ClusteringStrategy,
    DensityClusteringStrategy,
    DistanceClusteringStrategy,
    HierarchicalClusteringStrategy,
    LocatedItem,
)
from geocluster.schemas.data_models import Bounds, Cluster, ClusteringParameters, Point

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Bounds",
    "Cluster",
    "ClusterableItem",
    "ClusteringEngine",
    "ClusteringParameters",
    "ClusteringStrategy",
    "DensityClusteringStrategy",
    "DistanceClusteringStrategy",
    "HierarchicalClusteringStrategy",
    "LocatedItem",
    "Point",
]
