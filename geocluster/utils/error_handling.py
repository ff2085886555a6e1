"""
Error Handling Module

Provides the exception hierarchy for the clustering engine:
- Invalid arguments (empty inputs, mismatched lengths, bad parameters)
- Strategy lookup and state errors
- Configuration errors

Spatial index misses (items outside the root bounds) are not errors and
never raise; they surface as boolean results.
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class GeoClusteringError(Exception):
    """Base exception for all geocluster errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(GeoClusteringError):
    """Error in configuration loading or validation."""
    pass


# Argument Errors
class InvalidArgumentError(GeoClusteringError, ValueError):
    """An argument was empty, mismatched or otherwise unusable."""
    pass


class InvalidParametersError(InvalidArgumentError):
    """Clustering parameters failed validation for a strategy."""

    def __init__(
        self,
        strategy_name: str,
        errors: Optional[dict[str, str]] = None,
    ):
        super().__init__(
            f"Invalid clustering parameters for strategy {strategy_name}",
            error_code="INVALID_PARAMETERS",
            details={"strategy": strategy_name, "errors": errors or {}},
        )
        self.strategy_name = strategy_name


# Clustering Errors
class ClusteringError(GeoClusteringError):
    """Base class for clustering strategy errors."""
    pass


class StrategyNotFoundError(ClusteringError, LookupError):
    """Unknown clustering strategy name."""

    def __init__(self, strategy_name: str, available: Optional[list[str]] = None):
        super().__init__(
            f"Unknown clustering strategy: {strategy_name}",
            error_code="STRATEGY_NOT_FOUND",
            details={"strategy": strategy_name, "available": available or []},
        )
        self.strategy_name = strategy_name


class NoActiveStrategyError(ClusteringError, RuntimeError):
    """Operation requires an active strategy but none is set."""

    def __init__(self, message: str = "No clustering strategy is set"):
        super().__init__(message, error_code="NO_ACTIVE_STRATEGY")
