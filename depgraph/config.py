"""Configuration Management with Pydantic.

This module implements configuration models using Pydantic for parsing and
validation of YAML configuration files with environment variable overrides.
"""

import os
from enum import Enum
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field

# Initialize logger
logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_NAMES = ("depgraph.yaml", "depgraph.yml")


class DanglingEdgePolicy(str, Enum):
    """What to do when an edge target has been removed from the graph.

    RAISE treats the dangling edge as a precondition violation and aborts
    the operation. SKIP ignores the edge and records it where a report is
    available.
    """

    RAISE = "raise"
    SKIP = "skip"


class GraphConfig(BaseModel):
    """Behavioral settings for a Dag.

    Attributes:
        dangling_edges: Policy applied when an edge target cannot be resolved
        clear_after_dispatch: Drop processed keys from the invalidated set
            once dispatch finishes
    """

    dangling_edges: DanglingEdgePolicy = Field(
        default=DanglingEdgePolicy.RAISE,
        description="Policy for edges whose target was removed",
    )
    clear_after_dispatch: bool = Field(
        default=True,
        description="Clear invalidated keys after dispatch",
    )


class DepgraphConfig(BaseModel):
    """Top-level configuration combining graph and logging settings.

    Attributes:
        graph: Graph behavior configuration
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render logs as JSON instead of the console format
    """

    graph: GraphConfig = Field(default_factory=GraphConfig)
    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=True,
        description="Use the JSON log renderer",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DepgraphConfig":
        """Load configuration from a YAML file.

        An empty file yields the defaults (plus any environment overrides).

        Args:
            path: Path to the YAML configuration file

        Returns:
            Parsed and validated DepgraphConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If the YAML is malformed or not a mapping
            pydantic.ValidationError: If values fail validation
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))

        logger.info(
            "configuration_loaded",
            dangling_edges=config.graph.dangling_edges.value,
            clear_after_dispatch=config.graph.clear_after_dispatch,
            logging_level=config.logging_level,
        )

        return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: DEPGRAPH_<SECTION>_<KEY>
        Example: DEPGRAPH_GRAPH_DANGLING_EDGES, DEPGRAPH_LOGGING_LEVEL

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("graph", "dangling_edges"): "DEPGRAPH_GRAPH_DANGLING_EDGES",
            ("graph", "clear_after_dispatch"): "DEPGRAPH_GRAPH_CLEAR_AFTER_DISPATCH",
            ("logging_level",): "DEPGRAPH_LOGGING_LEVEL",
            ("json_logs",): "DEPGRAPH_JSON_LOGS",
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                current = current.setdefault(key, {})

            if env_var.endswith(("_DISPATCH", "_LOGS")):
                current[path[-1]] = value.lower() in ("true", "1", "yes")
            elif env_var.endswith("_LEVEL"):
                current[path[-1]] = value.upper()
            else:
                current[path[-1]] = value.lower()

            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if self.graph.dangling_edges is DanglingEdgePolicy.SKIP:
            warnings.append(
                "Dangling edges are skipped - removed nodes will silently cut propagation",
            )

        if not self.graph.clear_after_dispatch:
            warnings.append(
                "Invalidated keys are kept after dispatch - every dispatch re-walks them",
            )

        return warnings


def load_config(config_path: str | Path | None = None) -> DepgraphConfig:
    """Load configuration from file.

    Args:
        config_path: Path to configuration file. If None, looks for
            depgraph.yaml or depgraph.yml in the current directory.

    Returns:
        Loaded DepgraphConfig instance

    Raises:
        FileNotFoundError: If no config file is found
    """
    if config_path is None:
        for default_name in DEFAULT_CONFIG_NAMES:
            default_path = Path(default_name)
            if default_path.exists():
                config_path = default_path
                break
        else:
            msg = "No configuration file found. Expected depgraph.yaml or depgraph.yml"
            raise FileNotFoundError(msg)

    return DepgraphConfig.from_yaml(config_path)


__all__ = [
    "DanglingEdgePolicy",
    "DepgraphConfig",
    "GraphConfig",
    "load_config",
]
