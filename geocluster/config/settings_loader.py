"""
Settings for the geocluster engine and command line.

A YAML file (see ``config/settings.yaml``) is validated into the Pydantic
models below. The models cover the service identity, the strategies to
register, default clustering parameters, quadtree tuning and logging.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from geocluster.schemas.data_models import ClusteringParameters
from geocluster.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV_VAR = "GEOCLUSTER_CONFIG"


# =============================================================================
# Models
# =============================================================================

class ServiceSettings(BaseModel):
    """General service settings."""
    name: str = Field(default="geocluster", description="Service name used in log context")
    version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="production", description="Environment (development, staging, production)")


class SpatialIndexSettings(BaseModel):
    """Quadtree settings used by the distance strategy."""
    max_items_per_node: int = Field(default=10, ge=1, description="Leaf capacity before a split")
    max_depth: int = Field(default=8, ge=0, description="Maximum tree depth")
    indexing_threshold: int = Field(default=100, ge=0, description="Use the index above this many items")


class ParameterDefaults(BaseModel):
    """Default ClusteringParameters applied when a caller does not override them."""
    zoom_level: float = Field(default=14.0, description="Map zoom level")
    max_cluster_distance: Optional[float] = Field(default=None, description="Explicit radius in meters (null = derive from zoom)")
    min_cluster_size: int = Field(default=2, description="Minimum items per cluster")
    max_cluster_size: Optional[int] = Field(default=None, description="Maximum items per cluster")
    enable_incremental_clustering: bool = Field(default=True)
    enable_spatial_indexing: bool = Field(default=True)
    individual_items_zoom_threshold: float = Field(default=16.0)
    max_clustering_zoom_threshold: float = Field(default=16.0)
    min_clustering_zoom_threshold: float = Field(default=4.0)
    distance_weight_factor: float = Field(default=1.0)
    enable_temporal_clustering: bool = Field(default=False)
    temporal_clustering_window: int = Field(default=60, description="Temporal window in minutes")
    enable_category_clustering: bool = Field(default=False)

    def to_parameters(self, **overrides: Any) -> ClusteringParameters:
        """
        Build ClusteringParameters from these defaults.

        Args:
            **overrides: Field values replacing the defaults (None values are ignored)

        Returns:
            ClusteringParameters
        """
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ClusteringParameters(**values)


class ClusteringSettings(BaseModel):
    """Main clustering configuration."""
    default_strategy: str = Field(default="distance", description="Strategy activated on startup")
    strategies: List[str] = Field(
        default_factory=lambda: ["distance", "density", "hierarchical"],
        description="Strategies registered on startup",
    )
    parameters: ParameterDefaults = Field(default_factory=ParameterDefaults)
    spatial_index: SpatialIndexSettings = Field(default_factory=SpatialIndexSettings)

    @field_validator("default_strategy")
    @classmethod
    def normalize_default_strategy(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("strategies")
    @classmethod
    def normalize_strategies(cls, v: List[str]) -> List[str]:
        return [name.strip().lower() for name in v]

    @model_validator(mode="after")
    def default_strategy_enabled(self) -> "ClusteringSettings":
        if self.default_strategy not in self.strategies:
            raise ValueError(
                f"default_strategy '{self.default_strategy}' is not in strategies {self.strategies}"
            )
        return self


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional rotating log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in {"json", "console"}:
            raise ValueError(f"Log format must be 'json' or 'console', got: {v}")
        return v


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Loading
# =============================================================================

# ${NAME} or ${NAME:fallback}
ENV_PLACEHOLDER = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<fallback>[^}]*))?\}")


class ConfigManager:
    """
    Process-wide holder of the validated Settings.

    The first successful load is cached; ``reload_config`` drops the cache.
    Without an explicit path the locations from ``default_paths`` are tried
    in order and the built-in defaults apply when none of them exists.
    String values may reference the environment with ``${NAME}`` or
    ``${NAME:fallback}``.
    """

    _instance: Optional["ConfigManager"] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def default_paths(cls) -> List[Path]:
        """Candidate files, the one named by GEOCLUSTER_CONFIG first."""
        candidates = [Path("config") / "settings.yaml", Path("..") / "config" / "settings.yaml"]
        from_env = os.getenv(CONFIG_PATH_ENV_VAR)
        if from_env:
            candidates.insert(0, Path(from_env))
        return candidates

    @classmethod
    def _locate(cls, config_path: Optional[str]) -> Optional[Path]:
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    details={"path": str(config_path)},
                )
            return path
        for candidate in cls.default_paths():
            if candidate.exists():
                return candidate
        return None

    @staticmethod
    def _read_mapping(path: Path) -> dict:
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Invalid YAML configuration: {e}",
                details={"path": str(path)},
            ) from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                details={"path": str(path), "found": type(document).__name__},
            )
        return document

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Return the cached Settings, loading them on first use.

        Args:
            config_path: YAML file to read; searches ``default_paths`` when None

        Raises:
            ConfigurationError: The named file is missing, is not a YAML
                mapping, or holds values the models reject
        """
        if cls._settings is not None:
            return cls._settings

        path = cls._locate(config_path)
        if path is None:
            logger.info("No configuration file found, using built-in defaults")
            cls._settings = Settings()
            return cls._settings

        raw = cls._substitute_env_vars(cls._read_mapping(path))
        try:
            settings = Settings.model_validate(raw)
        except ValidationError as e:
            logger.error("Rejected configuration %s: %d error(s)", path, e.error_count())
            raise ConfigurationError(
                f"Invalid configuration in {path}: {e}",
                details={"path": str(path), "errors": e.errors(include_url=False)},
            ) from e

        logger.info("Loaded configuration from %s", path)
        cls._settings = settings
        return settings

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """Forget the cached Settings and load again."""
        cls._settings = None
        return cls.load_config(config_path)

    @classmethod
    def get_settings(cls) -> Settings:
        return cls._settings if cls._settings is not None else cls.load_config()

    @classmethod
    def _substitute_env_vars(cls, value: Any) -> Any:
        """Expand environment placeholders in every string of a loaded document."""
        if isinstance(value, str):
            return ENV_PLACEHOLDER.sub(
                lambda m: os.environ.get(m.group("name"), m.group("fallback") or ""),
                value,
            )
        if isinstance(value, dict):
            return {key: cls._substitute_env_vars(item) for key, item in value.items()}
        if isinstance(value, list):
            return [cls._substitute_env_vars(item) for item in value]
        return value


def get_settings() -> Settings:
    """Shortcut for ``ConfigManager.get_settings()``."""
    return ConfigManager.get_settings()
