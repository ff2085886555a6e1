"""
Unit tests for the hierarchical (single-linkage) clustering strategy.

Tests:
- Single-linkage chaining under the threshold
- Closest-pair merge order and tie-breaking
- Dropping clusters below min size
"""

import pytest

from conftest import make_chain
from geocluster.core.clusterable_item import LocatedItem
from geocluster.core.hierarchical_algorithm import HierarchicalClusteringStrategy
from geocluster.schemas.data_models import ClusteringParameters, Point


class LineItem(LocatedItem):
    """Item on a straight line with exact distances in meters."""

    def __init__(self, id, x):
        super().__init__(id=id, location=Point(0.0, 0.0))
        self.x = x

    def distance_to(self, other):
        return abs(self.x - other.x)


def line(*positions):
    return [LineItem(f"x{position}", position) for position in positions]


def ordered_ids(clusters):
    return [[item.id for item in cluster.items] for cluster in clusters]


@pytest.fixture
def strategy(noop_logger):
    return HierarchicalClusteringStrategy(logger=noop_logger)


@pytest.mark.unit
class TestHierarchicalClustering:
    """Test hierarchical clustering."""

    def test_metadata(self, strategy):
        assert strategy.name == "hierarchical"

    def test_empty_input(self, strategy, default_params):
        """Test no items give no clusters."""
        assert strategy.calculate_clusters([], default_params) == []

    def test_chain_merges_by_single_linkage(self, strategy):
        """Test a chain with 10 m gaps collapses under a 25 m threshold."""
        params = ClusteringParameters(max_cluster_distance=25.0, min_cluster_size=2)
        clusters = strategy.calculate_clusters(make_chain(5), params)

        assert len(clusters) == 1
        assert {item.id for item in clusters[0].items} == {"c0", "c1", "c2", "c3", "c4"}

    def test_small_clusters_are_dropped(self, strategy, close_pair_and_far_item, hundred_meter_params):
        """Test leftovers below min size vanish along with their items."""
        clusters = strategy.calculate_clusters(close_pair_and_far_item, hundred_meter_params)

        assert len(clusters) == 1
        assert {item.id for item in clusters[0].items} == {"p1", "p2"}
        assert "p3" not in {item.id for cluster in clusters for item in cluster.items}

    def test_min_size_one_keeps_singletons(self, strategy, close_pair_and_far_item):
        """Test singletons survive when min size is 1."""
        params = ClusteringParameters(max_cluster_distance=100.0, min_cluster_size=1)
        clusters = strategy.calculate_clusters(close_pair_and_far_item, params)

        assert sorted(c.count for c in clusters) == [1, 2]

    def test_single_item_below_min_size(self, strategy, hundred_meter_params):
        """Test a lone item is dropped when min size is 2."""
        assert strategy.calculate_clusters(line(0), hundred_meter_params) == []

    def test_merged_cluster_is_appended(self, strategy):
        """Test unmerged clusters keep their order and merges go last."""
        params = ClusteringParameters(max_cluster_distance=15.0, min_cluster_size=1)
        clusters = strategy.calculate_clusters(line(0, 100, 10, 200), params)

        assert ordered_ids(clusters) == [["x100"], ["x200"], ["x0", "x10"]]

    def test_first_pair_wins_ties(self, strategy):
        """Test equal distances resolve to the earliest pair in scan order."""
        params = ClusteringParameters(max_cluster_distance=15.0, min_cluster_size=1)
        clusters = strategy.calculate_clusters(line(0, 10, 20), params)

        # (x0, x10) merges first, leaving [x20, (x0, x10)] for the final merge
        assert ordered_ids(clusters) == [["x20", "x0", "x10"]]

    def test_threshold_is_inclusive(self, strategy):
        """Test a pair exactly at the threshold merges."""
        params = ClusteringParameters(max_cluster_distance=10.0, min_cluster_size=1)
        assert ordered_ids(strategy.calculate_clusters(line(0, 10), params)) == [["x0", "x10"]]

    def test_closest_pair_merges_first(self, strategy):
        """Test the global minimum is chosen over earlier pairs."""
        params = ClusteringParameters(max_cluster_distance=12.0, min_cluster_size=1)
        clusters = strategy.calculate_clusters(line(0, 12, 17), params)

        # (x12, x17) at 5 m merges before (x0, x12) at 12 m
        assert ordered_ids(clusters) == [["x0", "x12", "x17"]]

    def test_compatibility_not_consulted(self, strategy):
        """Test merges use distance only."""

        class RefusingLineItem(LineItem):
            def should_cluster_with(self, other):
                return False

        items = [RefusingLineItem("a", 0), RefusingLineItem("b", 5)]
        params = ClusteringParameters(max_cluster_distance=10.0, min_cluster_size=1)

        assert len(strategy.calculate_clusters(items, params)) == 1

    def test_logs_dropped_clusters(self, recording_logger, close_pair_and_far_item, hundred_meter_params):
        """Test dropped clusters are reported."""
        strategy = HierarchicalClusteringStrategy(logger=recording_logger)
        strategy.calculate_clusters(close_pair_and_far_item, hundred_meter_params)

        dropped = [r for r in recording_logger.records if r["message"] == "small_clusters_dropped"]
        assert dropped[0]["dropped_cluster_count"] == 1
        assert "hierarchical_clustering_completed" in recording_logger.messages("info")
