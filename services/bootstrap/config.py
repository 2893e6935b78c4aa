"""Settings loader for the enhancement service."""

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field

from services.pipeline.schemas import DEFAULT_STAGE_TIMEOUT_SECONDS


class BackendSettings(BaseModel):
    """Remote enrichment backend; stages not listed run locally"""

    url: str | None = None
    timeout_seconds: float = Field(20.0, gt=0)
    stages: list[str] = Field(default_factory=list)


class ServiceSettings(BaseModel):
    store_config_path: str = "adapters/persistence/sqlite/config.yaml"
    stage_timeout_seconds: float = Field(DEFAULT_STAGE_TIMEOUT_SECONDS, gt=0)
    health_interval_seconds: float = Field(30.0, gt=0)
    monitor_health: bool = True
    backend: BackendSettings = Field(default_factory=BackendSettings)


def load_config(config_path: str) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a dictionary, got {type(config)}")

    return config


def load_settings(config_path: str | None) -> ServiceSettings:
    """Service settings from YAML, or defaults when no path is given."""
    if not config_path:
        return ServiceSettings()
    return ServiceSettings.model_validate(load_config(config_path))
