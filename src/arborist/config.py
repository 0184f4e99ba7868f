"""Service configuration loading.

Resolution order (highest priority first):
1. Environment variables (``ARBORIST_DB``, ``ARBORIST_MAX_DEPTH``)
2. Config file (``arborist.yaml`` in the working directory, or ``--config``)
3. Built-in defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from arborist.observability.logging import get_logger

log = get_logger(__name__)

# Default configuration values
DEFAULT_DB_PATH = "arborist.db"
DEFAULT_MAX_DEPTH = 1000
DEFAULT_CONFIG_FILE = Path("arborist.yaml")


@dataclass
class ArboristConfig:
    """Configuration for an Arborist store.

    Attributes:
        db_path: SQLite database file, or ``":memory:"``.
        max_depth: Hop limit for ancestor listings, depth and path queries.
            Guards against corrupted cyclic data.
        seed_sample_data: Populate an empty store with the sample forest
            on ``arborist init``.
    """

    db_path: str = DEFAULT_DB_PATH
    max_depth: int = DEFAULT_MAX_DEPTH
    seed_sample_data: bool = False

    def __post_init__(self) -> None:
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be a positive integer, got {self.max_depth}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArboristConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with optional ``database.path``,
                ``traversal.max_depth`` and ``database.seed`` entries.

        Returns:
            ArboristConfig instance.

        Raises:
            ValueError: If ``database.seed`` is not a boolean.
        """
        database = dict(data.get("database") or {})
        traversal = dict(data.get("traversal") or {})
        seed = database.get("seed", False)
        if not isinstance(seed, bool):
            raise ValueError(f"database.seed must be true or false, got {seed!r}")
        return cls(
            db_path=str(database.get("path", DEFAULT_DB_PATH)),
            max_depth=int(traversal.get("max_depth", DEFAULT_MAX_DEPTH)),
            seed_sample_data=seed,
        )


def _read_config_file(config_path: Path) -> dict[str, Any]:
    """Read a YAML config file, returning an empty dict on any read problem."""
    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except OSError as e:
        log.warning("config_load_failed", path=str(config_path), error=str(e))
        return {}
    except YAMLError as e:
        log.warning("config_parse_failed", path=str(config_path), error=str(e))
        return {}

    if not isinstance(data, dict):
        return {}
    return data


def load_config(config_path: Path | None = None) -> ArboristConfig:
    """Load configuration from file and environment.

    Args:
        config_path: Explicit config file. Defaults to ``arborist.yaml`` in
            the working directory; a missing default file is not an error.

    Returns:
        Resolved configuration.

    Raises:
        FileNotFoundError: If an explicit *config_path* doesn't exist.
        ValueError: If a value is out of range or not a number.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = _read_config_file(config_path)
    elif DEFAULT_CONFIG_FILE.exists():
        data = _read_config_file(DEFAULT_CONFIG_FILE)

    config = ArboristConfig.from_dict(data)

    env_db = os.getenv("ARBORIST_DB")
    if env_db:
        config.db_path = env_db
    env_depth = os.getenv("ARBORIST_MAX_DEPTH")
    if env_depth:
        config = ArboristConfig(
            db_path=config.db_path,
            max_depth=int(env_depth),
            seed_sample_data=config.seed_sample_data,
        )

    log.debug("config_loaded", db_path=config.db_path, max_depth=config.max_depth)
    return config
