"""
Pytest configuration and shared fixtures for geocluster tests.

This module provides:
- Shared test fixtures
- Item generators (pairs, chains, grids)
- Parameter fixtures
- A recording logger for asserting on log calls
"""

import json
from datetime import datetime, timedelta
from typing import List

import pytest

from geocluster.config.settings_loader import ConfigManager
from geocluster.core.clusterable_item import LocatedItem
from geocluster.schemas.data_models import ClusteringParameters, Point
from geocluster.utils.advanced_logging import ClusteringLogger, NoOpClusteringLogger

# ~10 m of latitude
TEN_METERS_LAT = 0.00009


def make_item(item_id, lat, lng, **kwargs) -> LocatedItem:
    """Build a LocatedItem at (lat, lng)."""
    return LocatedItem(id=item_id, location=Point(lat, lng), **kwargs)


def make_chain(count: int, spacing_deg: float = TEN_METERS_LAT, prefix: str = "c") -> List[LocatedItem]:
    """Items on a north-south line, ``spacing_deg`` apart."""
    return [make_item(f"{prefix}{i}", i * spacing_deg, 0.0) for i in range(count)]


def make_grid(rows: int, cols: int, spacing_deg: float, origin=(0.0, 0.0), prefix: str = "g") -> List[LocatedItem]:
    """Items on a regular lat/lng grid."""
    lat0, lng0 = origin
    return [
        make_item(f"{prefix}{r}_{c}", lat0 + r * spacing_deg, lng0 + c * spacing_deg)
        for r in range(rows)
        for c in range(cols)
    ]


class RecordingLogger(ClusteringLogger):
    """ClusteringLogger that keeps every call for assertions."""

    def __init__(self):
        self.records = []

    def _record(self, level, message, error, stack_trace, fields):
        self.records.append({
            "level": level,
            "message": message,
            "error": error,
            "stack_trace": stack_trace,
            **fields,
        })

    def debug(self, message, error=None, stack_trace=None, **fields):
        self._record("debug", message, error, stack_trace, fields)

    def info(self, message, error=None, stack_trace=None, **fields):
        self._record("info", message, error, stack_trace, fields)

    def warning(self, message, error=None, stack_trace=None, **fields):
        self._record("warning", message, error, stack_trace, fields)

    def error(self, message, error=None, stack_trace=None, **fields):
        self._record("error", message, error, stack_trace, fields)

    def messages(self, level=None):
        return [r["message"] for r in self.records if level is None or r["level"] == level]


# =============================================================================
# Item Fixtures
# =============================================================================

@pytest.fixture
def close_pair():
    """Two items ~55 m apart on the equator."""
    return [make_item("p1", 0.0, 0.0), make_item("p2", 0.0, 0.0005)]


@pytest.fixture
def close_pair_and_far_item(close_pair):
    """Close pair plus one item far away."""
    return close_pair + [make_item("p3", 10.0, 10.0)]


@pytest.fixture
def chain_items():
    """Five colinear items 10 m apart."""
    return make_chain(5)


@pytest.fixture
def two_groups():
    """Two tight groups of three items roughly 11 km apart."""
    group_a = [make_item(f"a{i}", 0.0, i * 0.0001) for i in range(3)]
    group_b = [make_item(f"b{i}", 0.1, i * 0.0001) for i in range(3)]
    return group_a + group_b


@pytest.fixture
def large_grid():
    """144 items on a 12x12 grid with ~11 m spacing, enough to trigger the quadtree."""
    return make_grid(12, 12, 0.0001)


@pytest.fixture
def timestamped_items():
    """Three co-located items, two close in time and one far."""
    base = datetime(2024, 5, 1, 12, 0, 0)
    return [
        make_item("t1", 0.0, 0.0, timestamp=base),
        make_item("t2", 0.0, 0.00001, timestamp=base + timedelta(minutes=30)),
        make_item("t3", 0.0, 0.00002, timestamp=base + timedelta(hours=5)),
    ]


@pytest.fixture
def points_file(tmp_path, close_pair_and_far_item):
    """JSON point file for CLI tests."""
    data = [
        {"id": item.id, "lat": item.location.latitude, "lng": item.location.longitude}
        for item in close_pair_and_far_item
    ]
    path = tmp_path / "points.json"
    path.write_text(json.dumps(data))
    return path


# =============================================================================
# Parameter Fixtures
# =============================================================================

@pytest.fixture
def hundred_meter_params():
    """Explicit 100 m radius, pairs allowed."""
    return ClusteringParameters(max_cluster_distance=100.0, min_cluster_size=2)


@pytest.fixture
def default_params():
    """Default parameters."""
    return ClusteringParameters()


# =============================================================================
# Logger Fixtures
# =============================================================================

@pytest.fixture
def recording_logger():
    """Logger that records calls."""
    return RecordingLogger()


@pytest.fixture
def noop_logger():
    """Logger that discards everything."""
    return NoOpClusteringLogger()


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config_manager():
    """Clear cached settings between tests."""
    ConfigManager._settings = None
    yield
    ConfigManager._settings = None


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests for full workflows"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take >1 second"
    )
