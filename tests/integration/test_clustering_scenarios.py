"""
Integration tests for clustering through the engine.

Tests the full path from settings to clusters:
- Reference scenarios for each strategy
- Identity preservation across strategies
- Zoom behaviour of the effective threshold
- Incremental updates on top of a full run
"""

import pytest

from conftest import make_chain, make_grid, make_item
from geocluster.config.settings_loader import Settings
from geocluster.core.clustering_engine import BUILTIN_STRATEGIES, ClusteringEngine
from geocluster.schemas.data_models import ClusteringParameters

ALL_STRATEGIES = sorted(BUILTIN_STRATEGIES)


@pytest.fixture
def engine(noop_logger):
    return ClusteringEngine.from_settings(Settings(), logger=noop_logger)


def identities(clusters):
    return sorted(item.id for cluster in clusters for item in cluster.items)


@pytest.mark.integration
class TestReferenceScenarios:
    """Reference scenarios run through the engine."""

    def test_close_pair_forms_one_cluster(self, engine, close_pair, hundred_meter_params):
        clusters = engine.calculate_clusters(close_pair, hundred_meter_params)

        assert len(clusters) == 1
        assert clusters[0].count == 2

    def test_far_item_stays_single(self, engine, close_pair_and_far_item, hundred_meter_params):
        clusters = engine.calculate_clusters(close_pair_and_far_item, hundred_meter_params)

        assert sorted(c.count for c in clusters) == [1, 2]
        pair = next(c for c in clusters if c.count == 2)
        assert {item.id for item in pair.items} == {"p1", "p2"}

    def test_hierarchical_chains_colinear_items(self, engine):
        items = make_chain(5)
        params = ClusteringParameters(max_cluster_distance=25.0, min_cluster_size=2)

        # Endpoints are ~40 m apart, beyond the 25 m threshold
        assert items[0].distance_to(items[-1]) > 25.0

        clusters = engine.calculate_clusters_with_strategy(items, params, "hierarchical")
        assert [c.count for c in clusters] == [5]

    @pytest.mark.parametrize("strategy_name", ALL_STRATEGIES)
    def test_empty_input(self, engine, default_params, strategy_name):
        assert engine.calculate_clusters_with_strategy([], default_params, strategy_name) == []

    @pytest.mark.parametrize("zoom", [16.5, 17.0, 20.0])
    def test_zoomed_in_shows_individual_items(self, engine, close_pair_and_far_item, zoom):
        params = ClusteringParameters(zoom_level=zoom, max_cluster_distance=1000.0)
        clusters = engine.calculate_clusters(close_pair_and_far_item, params)

        assert len(clusters) == 3
        assert all(c.count == 1 and c.is_expanded for c in clusters)


@pytest.mark.integration
class TestIdentityPreservation:
    """Every input item comes back exactly once."""

    @pytest.mark.parametrize("strategy_name", ALL_STRATEGIES)
    @pytest.mark.parametrize("distance", [15.0, 30.0, 100.0])
    def test_grid(self, engine, strategy_name, distance):
        items = make_grid(6, 6, 0.0001)
        params = ClusteringParameters(max_cluster_distance=distance, min_cluster_size=1)
        clusters = engine.calculate_clusters_with_strategy(items, params, strategy_name)

        assert identities(clusters) == sorted(item.id for item in items)

    @pytest.mark.parametrize("strategy_name", ["distance", "density"])
    def test_large_grid(self, engine, large_grid, strategy_name):
        params = ClusteringParameters(max_cluster_distance=30.0, min_cluster_size=1)
        clusters = engine.calculate_clusters_with_strategy(large_grid, params, strategy_name)

        assert identities(clusters) == sorted(item.id for item in large_grid)

    @pytest.mark.parametrize("strategy_name", ALL_STRATEGIES)
    def test_mixed_input(self, engine, two_groups, strategy_name):
        items = two_groups + [make_item("lonely", 5.0, 5.0, category="x")]
        params = ClusteringParameters(max_cluster_distance=100.0, min_cluster_size=1)

        clusters = engine.calculate_clusters_with_strategy(items, params, strategy_name)
        assert identities(clusters) == sorted(item.id for item in items)

    def test_density_with_noise(self, engine):
        """Density keeps noise as singletons at any min size."""
        items = make_grid(3, 3, 0.0001) + [make_item("far1", 1.0, 1.0), make_item("far2", -1.0, -1.0)]
        params = ClusteringParameters(max_cluster_distance=20.0, min_cluster_size=4)

        clusters = engine.calculate_clusters_with_strategy(items, params, "density")
        assert identities(clusters) == sorted(item.id for item in items)

    def test_distance_discards_undersized_candidates(self, engine):
        """Candidates smaller than min size (but above one) are not returned."""
        items = [make_item("a", 0.0, 0.0), make_item("b", 0.0, 0.0001), make_item("c", 1.0, 1.0)]
        params = ClusteringParameters(max_cluster_distance=100.0, min_cluster_size=3)

        clusters = engine.calculate_clusters_with_strategy(items, params, "distance")
        assert identities(clusters) == ["c"]

    def test_hierarchical_drops_undersized_clusters(self, engine, close_pair_and_far_item, hundred_meter_params):
        """Clusters below min size are dropped, not returned as singletons."""
        clusters = engine.calculate_clusters_with_strategy(
            close_pair_and_far_item, hundred_meter_params, "hierarchical"
        )
        assert identities(clusters) == ["p1", "p2"]


@pytest.mark.integration
class TestZoomBehaviour:
    """Effective threshold follows the zoom level."""

    def test_threshold_non_increasing_with_zoom(self, engine):
        zooms = [4.0 + 0.5 * step for step in range(25)]
        thresholds = [
            engine.get_cluster_distance_threshold(ClusteringParameters(zoom_level=zoom))
            for zoom in zooms
        ]

        assert thresholds[0] == pytest.approx(20000.0)
        assert thresholds[-1] == pytest.approx(0.0)
        assert all(a >= b for a, b in zip(thresholds, thresholds[1:]))

    def test_zooming_in_splits_groups(self, engine, two_groups):
        """The two groups ~11 km apart merge when zoomed out and separate when zoomed in."""
        zoomed_out = engine.calculate_clusters(two_groups, ClusteringParameters(zoom_level=5.0))
        zoomed_in = engine.calculate_clusters(two_groups, ClusteringParameters(zoom_level=14.0))

        assert [c.count for c in zoomed_out] == [6]
        assert [c.count for c in zoomed_in] == [3, 3]


@pytest.mark.integration
class TestIncrementalWorkflow:
    """Incremental updates on top of a full run."""

    def test_incremental_after_full_run(self, engine, two_groups, hundred_meter_params):
        distance = engine.get_strategy("distance")
        existing = engine.calculate_clusters(two_groups, hundred_meter_params)

        new_item = make_item("a_new", 0.0, 0.0003)
        updated = distance.calculate_incremental_clusters(
            two_groups, [new_item], existing, hundred_meter_params
        )

        assert identities(updated) == sorted([item.id for item in two_groups] + ["a_new"])
        # Group b is far from the new item and passes through untouched
        group_b = next(c for c in existing if c.first_item.id == "b0")
        assert updated[0] is group_b
        assert {item.id for item in updated[1].items} == {"a0", "a1", "a2", "a_new"}
