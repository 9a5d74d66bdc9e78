"""Configuration loading.

Settings come from a YAML or JSON file (YAML is a superset, so both load
through ``yaml.safe_load``). Lookup order: explicit path, the file named by
``COLLECTION_AGENT_CONFIG``, ``collection-agent.yaml``/``.json`` in the
working directory, then ``~/.collection-agent.yaml``. Without any file the
defaults apply.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from collection_agent.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "COLLECTION_AGENT_CONFIG"
CWD_CONFIG_NAMES = ("collection-agent.yaml", "collection-agent.yml", "collection-agent.json")
HOME_CONFIG_NAME = ".collection-agent.yaml"


class TimeoutSettings(BaseModel):
    """Executor timeouts in seconds."""

    request: float = Field(default=30.0, ge=1, le=300)
    collection: float = Field(default=120.0, ge=1, le=600)


class LoggingSettings(BaseModel):
    level: Literal["debug", "info", "warning", "error"] = "info"
    log_file: str | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5


class PerformanceSettings(BaseModel):
    cache_enabled: bool = True
    cache_ttl: float = Field(default=300.0, gt=0)  # seconds


class Settings(BaseModel):
    bru_path: str | None = None
    collections_home: str | None = None
    timeout: TimeoutSettings = Field(default_factory=TimeoutSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)


def load_settings_file(config_path: Path) -> Settings:
    """Load and validate one configuration file."""
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse configuration file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")

    try:
        settings = Settings(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration file {config_path}: {problems}") from e

    logger.debug("Configuration loaded from %s", config_path)
    return settings


def _candidate_paths() -> list[Path]:
    candidates = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path))
    cwd = Path.cwd()
    candidates.extend(cwd / name for name in CWD_CONFIG_NAMES)
    candidates.append(Path.home() / HOME_CONFIG_NAME)
    return candidates


def load_settings(config_path: Path | None = None) -> Settings:
    """Resolve and load settings, falling back to defaults."""
    if config_path is not None:
        if not config_path.is_file():
            logger.warning("Configuration file not found: %s, using defaults", config_path)
            return Settings()
        return load_settings_file(config_path)

    for candidate in _candidate_paths():
        if candidate.is_file():
            return load_settings_file(candidate)

    logger.debug("No configuration file found, using defaults")
    return Settings()
