#!/usr/bin/env python3
"""
geocluster CLI

Command-line interface for clustering point files.

Usage:
    geocluster cluster --input points.json [--strategy density] [--zoom 12]
    geocluster benchmark --input points.json [--strategies distance hierarchical]
    geocluster recommend --input points.json --zoom 12

Input files hold a JSON list of {id, lat, lng, weight?, category?, timestamp?}.
Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from geocluster.config.settings_loader import ConfigManager, Settings
from geocluster.core.clusterable_item import LocatedItem
from geocluster.core.clustering_engine import ClusteringEngine
from geocluster.utils.advanced_logging import StructlogClusteringLogger, configure_logging, log_exceptions
from geocluster.utils.error_handling import GeoClusteringError, InvalidArgumentError


class ClusteringCLI:
    """CLI facade over a ClusteringEngine built from settings."""

    def __init__(self, settings: Settings):
        """
        Initialize CLI.

        Args:
            settings: Loaded application settings
        """
        self.settings = settings
        self.engine = ClusteringEngine.from_settings(
            settings,
            logger=StructlogClusteringLogger("geocluster.cli"),
        )

    def cluster(
        self,
        items: List[LocatedItem],
        strategy: Optional[str] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        """
        Cluster items and return a JSON-ready result.

        Args:
            items: Items to cluster
            strategy: Strategy name (configured default if None)
            **overrides: ClusteringParameters overrides (None values ignored)

        Returns:
            Dict with strategy, clusters and summary stats
        """
        parameters = self.settings.clustering.parameters.to_parameters(**overrides)
        strategy_name = strategy or self.settings.clustering.default_strategy

        clusters = self.engine.calculate_clusters_with_strategy(items, parameters, strategy_name)

        return {
            "strategy": strategy_name,
            "threshold_m": parameters.get_effective_cluster_distance(),
            "clusters": [cluster.to_dict() for cluster in clusters],
            "stats": self.engine.summarize_clusters(clusters).model_dump(),
        }

    def benchmark(
        self,
        items: List[LocatedItem],
        strategies: Optional[List[str]] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        """Benchmark strategies over the same items."""
        parameters = self.settings.clustering.parameters.to_parameters(**overrides)
        results = self.engine.benchmark_strategies(items, parameters, strategies)
        return {name: result.model_dump() for name, result in results.items()}

    def recommend(self, items: List[LocatedItem], zoom: float) -> Dict[str, Any]:
        """Size-based and data-driven parameter recommendations."""
        return {
            "by_item_count": self.engine.get_optimal_parameters(items, zoom).model_dump(),
            "from_data": self.engine.suggest_parameters_from_data(items, zoom).model_dump(),
        }


def load_items(path: str) -> List[LocatedItem]:
    """
    Read items from a JSON point file.

    Raises:
        InvalidArgumentError: If the file is missing or malformed
    """
    file_path = Path(path)
    if not file_path.exists():
        raise InvalidArgumentError(f"Input file not found: {path}", details={"path": path})

    try:
        with open(file_path, "r") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidArgumentError(f"Invalid JSON in {path}: {e}", details={"path": path}) from e

    if not isinstance(raw, list):
        raise InvalidArgumentError("Input must be a JSON list of points", details={"path": path})

    items = []
    for index, entry in enumerate(raw):
        try:
            items.append(LocatedItem.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Invalid point at index {index}: {e}",
                details={"path": path, "index": index},
            ) from e

    return items


def print_json(data: Any, indent: int = 2):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geocluster",
        description="Geographic point clustering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to settings.yaml")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_parameter_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--input", "-i", required=True, help="JSON point file")
        sub.add_argument("--zoom", type=float, help="Zoom level")
        sub.add_argument("--max-distance", type=float, help="Explicit clustering radius in meters")
        sub.add_argument("--min-size", type=int, help="Minimum cluster size")
        sub.add_argument("--max-size", type=int, help="Maximum cluster size")
        sub.add_argument("--by-category", action="store_true", help="Only cluster items of equal category")
        sub.add_argument("--time-window", type=int, help="Only cluster items within N minutes")

    cluster_parser = subparsers.add_parser("cluster", help="Cluster a point file")
    add_parameter_options(cluster_parser)
    cluster_parser.add_argument("--strategy", "-s", help="Strategy (distance/density/hierarchical)")

    benchmark_parser = subparsers.add_parser("benchmark", help="Compare strategies")
    add_parameter_options(benchmark_parser)
    benchmark_parser.add_argument("--strategies", nargs="+", help="Strategies to benchmark (default: all)")

    recommend_parser = subparsers.add_parser("recommend", help="Recommend parameters")
    recommend_parser.add_argument("--input", "-i", required=True, help="JSON point file")
    recommend_parser.add_argument("--zoom", type=float, required=True, help="Zoom level")

    return parser


def parameter_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides = {
        "zoom_level": args.zoom,
        "max_cluster_distance": args.max_distance,
        "min_cluster_size": args.min_size,
        "max_cluster_size": args.max_size,
    }
    if args.by_category:
        overrides["enable_category_clustering"] = True
    if args.time_window is not None:
        overrides["enable_temporal_clustering"] = True
        overrides["temporal_clustering_window"] = args.time_window
    return overrides


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ConfigManager.reload_config(args.config)
        log_settings = settings.logging
        configure_logging(
            log_level=args.log_level or log_settings.level,
            log_format=log_settings.format,
            log_file=log_settings.file,
            service_name=settings.service.name,
        )

        with log_exceptions(logger=StructlogClusteringLogger("geocluster.cli"), operation=args.command):
            cli = ClusteringCLI(settings)
            items = load_items(args.input)

            if args.command == "cluster":
                result = cli.cluster(items, strategy=args.strategy, **parameter_overrides(args))
            elif args.command == "benchmark":
                result = cli.benchmark(items, strategies=args.strategies, **parameter_overrides(args))
            else:
                result = cli.recommend(items, args.zoom)

    except GeoClusteringError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        print_json(e.to_dict())
        return 1

    print_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
