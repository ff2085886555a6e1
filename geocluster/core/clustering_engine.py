"""
Clustering Engine - Orchestrates clustering operations.

Main entry point for clustering functionality.
Manages the strategy registry, parameter validation, execution, benchmarking
and parameter recommendations.
"""

from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Sequence, Type

from geocluster.core import cluster_utils
from geocluster.core.base_clustering import ClusteringStrategy, T
from geocluster.core.density_algorithm import DensityClusteringStrategy
from geocluster.core.distance_algorithm import DistanceClusteringStrategy
from geocluster.core.hierarchical_algorithm import HierarchicalClusteringStrategy
from geocluster.schemas.data_models import (
    Cluster,
    ClusteringParameters,
    ClusteringStats,
    EngineStats,
    StrategyBenchmark,
)
from geocluster.utils.advanced_logging import (
    ClusteringLogger,
    PerformanceLogger,
    StructlogClusteringLogger,
)
from geocluster.utils.error_handling import (
    InvalidParametersError,
    NoActiveStrategyError,
    StrategyNotFoundError,
)

if TYPE_CHECKING:
    from geocluster.config.settings_loader import Settings


# Strategies available by name to from_settings() and the CLI
BUILTIN_STRATEGIES: Dict[str, Type[ClusteringStrategy]] = {
    DistanceClusteringStrategy.name: DistanceClusteringStrategy,
    DensityClusteringStrategy.name: DensityClusteringStrategy,
    HierarchicalClusteringStrategy.name: HierarchicalClusteringStrategy,
}


class ClusteringEngine:
    """
    Main clustering engine that orchestrates different strategies.

    Provides a unified interface for all clustering operations regardless
    of the underlying strategy. The registry is seeded with the distance
    strategy, which starts out active.
    """

    def __init__(
        self,
        logger: Optional[ClusteringLogger] = None,
        default_strategy: Optional[ClusteringStrategy] = None,
    ):
        """
        Initialize clustering engine.

        Args:
            logger: Logger capability shared with the seeded strategy
            default_strategy: Strategy to seed and activate (distance if None)
        """
        self.logger = logger or StructlogClusteringLogger(__name__)
        self._strategies: Dict[str, ClusteringStrategy] = {}
        self._current_strategy: Optional[ClusteringStrategy] = None

        strategy = default_strategy or DistanceClusteringStrategy(logger=self.logger)
        self._strategies[self._key(strategy.name)] = strategy
        self._current_strategy = strategy

        self.logger.info("clustering_engine_initialized", default_strategy=strategy.name)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        logger: Optional[ClusteringLogger] = None,
    ) -> "ClusteringEngine":
        """
        Build an engine with the strategies enabled in settings.

        Args:
            settings: Loaded application settings
            logger: Logger capability

        Returns:
            Engine with settings.clustering.default_strategy active

        Raises:
            StrategyNotFoundError: If a configured strategy name is not built in
        """
        logger = logger or StructlogClusteringLogger(__name__)
        clustering = settings.clustering
        index_settings = clustering.spatial_index

        distance = DistanceClusteringStrategy(
            logger=logger,
            max_items_per_node=index_settings.max_items_per_node,
            max_depth=index_settings.max_depth,
            spatial_index_threshold=index_settings.indexing_threshold,
        )
        engine = cls(logger=logger, default_strategy=distance)

        for name in clustering.strategies:
            key = cls._key(name)
            if key == distance.name:
                continue
            strategy_class = BUILTIN_STRATEGIES.get(key)
            if strategy_class is None:
                raise StrategyNotFoundError(name, available=sorted(BUILTIN_STRATEGIES))
            engine.register_strategy(strategy_class(logger=logger))

        engine.set_strategy(clustering.default_strategy)
        return engine

    @staticmethod
    def _key(name: str) -> str:
        return name.lower()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_strategy(self, strategy: ClusteringStrategy) -> None:
        """Register a strategy, replacing any existing one with the same name."""
        self._strategies[self._key(strategy.name)] = strategy
        self.logger.info("strategy_registered", strategy=strategy.name)

    def set_strategy(self, strategy_name: str) -> None:
        """
        Activate a registered strategy.

        Raises:
            StrategyNotFoundError: If no strategy is registered under that name
        """
        self._current_strategy = self._require_strategy(strategy_name)
        self.logger.info("strategy_activated", strategy=self._current_strategy.name)

    @property
    def current_strategy(self) -> Optional[ClusteringStrategy]:
        return self._current_strategy

    @property
    def available_strategies(self) -> List[str]:
        return list(self._strategies)

    def get_strategy(self, name: str) -> Optional[ClusteringStrategy]:
        return self._strategies.get(self._key(name))

    def _require_strategy(self, name: str) -> ClusteringStrategy:
        strategy = self.get_strategy(name)
        if strategy is None:
            raise StrategyNotFoundError(name, available=self.available_strategies)
        return strategy

    def _require_current(self) -> ClusteringStrategy:
        if self._current_strategy is None:
            raise NoActiveStrategyError()
        return self._current_strategy

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    def calculate_clusters(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        """
        Cluster items with the active strategy.

        Raises:
            NoActiveStrategyError: If no strategy is active
            InvalidParametersError: If the strategy rejects the parameters
        """
        return self._run(self._require_current(), items, parameters)

    def calculate_clusters_with_strategy(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
        strategy_name: str,
    ) -> List[Cluster[T]]:
        """
        Cluster items with a named strategy, leaving the active one unchanged.

        Raises:
            StrategyNotFoundError: If the strategy is not registered
            InvalidParametersError: If the strategy rejects the parameters
        """
        return self._run(self._require_strategy(strategy_name), items, parameters)

    def _run(
        self,
        strategy: ClusteringStrategy,
        items: Sequence[T],
        parameters: ClusteringParameters,
    ) -> List[Cluster[T]]:
        self._validate_or_raise(strategy, parameters)

        self.logger.info(
            "clustering_started",
            strategy=strategy.name,
            item_count=len(items),
        )

        with PerformanceLogger(
            "calculate_clusters",
            logger=self.logger,
            item_count=len(items),
            strategy=strategy.name,
        ) as perf:
            clusters = strategy.calculate_clusters(items, parameters)

        self.logger.info(
            "clustering_completed",
            strategy=strategy.name,
            item_count=len(items),
            cluster_count=len(clusters),
            duration_ms=round(perf.elapsed_ms, 3),
        )

        return clusters

    def _validate_or_raise(
        self,
        strategy: ClusteringStrategy,
        parameters: ClusteringParameters,
    ) -> None:
        if not strategy.validate_parameters(parameters):
            errors = parameters.validation_errors()
            self.logger.warning(
                "invalid_clustering_parameters",
                strategy=strategy.name,
                errors=errors,
            )
            raise InvalidParametersError(strategy.name, errors=errors)

    # ------------------------------------------------------------------
    # Delegation to the active strategy
    # ------------------------------------------------------------------

    def should_cluster_items(self, item1: T, item2: T, parameters: ClusteringParameters) -> bool:
        return self._require_current().should_cluster_items(item1, item2, parameters)

    def get_cluster_distance_threshold(self, parameters: ClusteringParameters) -> float:
        return self._require_current().get_cluster_distance_threshold(parameters)

    def validate_parameters(self, parameters: ClusteringParameters) -> bool:
        return self._require_current().validate_parameters(parameters)

    def get_supported_parameters(self) -> FrozenSet[str]:
        return self._require_current().supported_parameters

    # ------------------------------------------------------------------
    # Benchmarking & recommendations
    # ------------------------------------------------------------------

    def benchmark_strategies(
        self,
        items: Sequence[T],
        parameters: ClusteringParameters,
        strategy_names: Optional[Sequence[str]] = None,
    ) -> Dict[str, StrategyBenchmark]:
        """
        Time several strategies over the same input.

        A failing, unknown or parameter-rejecting strategy is recorded as an
        unsuccessful entry; the remaining strategies still run.

        Args:
            items: Items to cluster
            parameters: Parameters shared by every run
            strategy_names: Strategies to run (all registered if None)

        Returns:
            Benchmark per requested strategy name
        """
        names = list(strategy_names) if strategy_names is not None else self.available_strategies
        results: Dict[str, StrategyBenchmark] = {}

        self.logger.info(
            "benchmark_started",
            strategy_count=len(names),
            item_count=len(items),
        )

        for name in names:
            perf = PerformanceLogger(
                "benchmark_strategy",
                logger=self.logger,
                item_count=len(items),
                strategy=name,
            )
            try:
                with perf:
                    strategy = self._require_strategy(name)
                    self._validate_or_raise(strategy, parameters)
                    clusters = strategy.calculate_clusters(items, parameters)
            except Exception as e:
                results[name] = StrategyBenchmark(
                    strategy=name,
                    success=False,
                    processing_time_ms=perf.elapsed_ms,
                    item_count=len(items),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            cluster_count = len(clusters)
            results[name] = StrategyBenchmark(
                strategy=name,
                success=True,
                processing_time_ms=perf.elapsed_ms,
                cluster_count=cluster_count,
                item_count=len(items),
                compression_ratio=cluster_count / len(items) if items else 0.0,
                average_cluster_size=(
                    sum(cluster.count for cluster in clusters) / cluster_count
                    if cluster_count else 0.0
                ),
            )

        self.logger.info(
            "benchmark_completed",
            succeeded=sum(1 for result in results.values() if result.success),
            failed=sum(1 for result in results.values() if not result.success),
        )

        return results

    def get_optimal_parameters(
        self,
        items: Sequence[T],
        zoom_level: float,
        strategy_name: Optional[str] = None,
    ) -> ClusteringParameters:
        """
        Recommend parameters from the input size.

        Args:
            items: Items that will be clustered
            zoom_level: Target zoom level
            strategy_name: Strategy the parameters are for (active one if None)

        Returns:
            Recommended ClusteringParameters

        Raises:
            StrategyNotFoundError: If strategy_name is not registered
            NoActiveStrategyError: If strategy_name is None and none is active
        """
        if strategy_name is not None:
            self._require_strategy(strategy_name)
        else:
            self._require_current()

        if not items:
            return ClusteringParameters(zoom_level=zoom_level)

        item_count = len(items)

        if item_count > 10000:
            min_cluster_size = 5
        elif item_count > 1000:
            min_cluster_size = 3
        else:
            min_cluster_size = 2

        return ClusteringParameters(
            zoom_level=zoom_level,
            min_cluster_size=min_cluster_size,
            max_cluster_size=50 if item_count > 1000 else None,
            enable_spatial_indexing=item_count > 100,
            enable_incremental_clustering=item_count > 50,
        )

    def suggest_parameters_from_data(
        self,
        items: Sequence[T],
        zoom_level: float,
    ) -> ClusteringParameters:
        """Data-driven recommendation (radius from mean pairwise distance)."""
        return cluster_utils.suggest_optimal_parameters(items, zoom_level)

    def get_clustering_stats(self) -> EngineStats:
        """Snapshot of the registry for monitoring."""
        current = self._current_strategy
        return EngineStats(
            current_strategy=current.name if current else None,
            available_strategies=self.available_strategies,
            supported_parameters=sorted(current.supported_parameters) if current else None,
        )

    def summarize_clusters(self, clusters: Sequence[Cluster]) -> ClusteringStats:
        return cluster_utils.calculate_clustering_stats(clusters)
