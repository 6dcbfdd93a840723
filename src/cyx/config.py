"""User configuration for cyx.

Configuration lives in ``config.toml`` under the config directory::

    provider = "groq"

    [cache]
    enabled = true
    ttl_days = 30
    similarity_threshold = 0.80

    [normalization]
    remove_punctuation = true

Directory resolution follows XDG:

- config: ``$CYX_CONFIG_DIR`` or ``$XDG_CONFIG_HOME/cyx`` (``~/.config/cyx``)
- cache: ``$CYX_CACHE_DIR`` or ``$XDG_CACHE_HOME/cyx`` (``~/.cache/cyx``)
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cyx.cache.normalizer import NormalizationConfig

logger = logging.getLogger(__name__)

APP_NAME = "cyx"
CONFIG_FILE = "config.toml"


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class CacheConfig(BaseModel):
    """Settings for the query cache."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    ttl_days: int = Field(default=30, ge=0)
    similarity_threshold: float = Field(default=0.80, ge=0.0, le=1.0)
    embedding_dimensions: int = Field(default=256, ge=1)


class NormalizationSettings(BaseModel):
    """Normalization toggles as written in the config file."""

    model_config = ConfigDict(extra="ignore")

    lowercase: bool = True
    remove_punctuation: bool = False
    expand_abbreviations: bool = True
    trim_whitespace: bool = True
    remove_stopwords: bool = True

    def to_config(self) -> NormalizationConfig:
        return NormalizationConfig(**self.model_dump())


class CyxConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="ignore")

    provider: Literal["perplexity", "groq", "ollama"] = "groq"
    cache: CacheConfig = Field(default_factory=CacheConfig)
    normalization: NormalizationSettings = Field(default_factory=NormalizationSettings)
    data_dir: Path | None = None
    cache_dir: Path | None = None

    def resolved_cache_dir(self) -> Path:
        """Cache directory from the config file, else the default location."""
        if self.cache_dir is not None:
            return self.cache_dir.expanduser()
        return default_cache_dir()


def _xdg_dir(override_var: str, xdg_var: str, fallback: str) -> Path:
    override = os.environ.get(override_var)
    if override:
        return Path(override).expanduser()

    base = os.environ.get(xdg_var)
    root = Path(base).expanduser() if base else Path.home() / fallback
    return root / APP_NAME


def default_config_dir() -> Path:
    return _xdg_dir("CYX_CONFIG_DIR", "XDG_CONFIG_HOME", ".config")


def default_cache_dir() -> Path:
    return _xdg_dir("CYX_CACHE_DIR", "XDG_CACHE_HOME", ".cache")


def default_config_path() -> Path:
    return default_config_dir() / CONFIG_FILE


def load_config(path: str | Path | None = None) -> CyxConfig:
    """Load configuration from a TOML file.

    Args:
        path: Config file path. Uses ``default_config_path()`` if not specified.

    Returns:
        Parsed configuration. Defaults if the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = Path(path).expanduser() if path is not None else default_config_path()

    if not config_path.exists():
        logger.debug(f"No config file at {config_path}, using defaults")
        return CyxConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}", path=config_path) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file: {e}", path=config_path) from e

    try:
        config = CyxConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}", path=config_path) from e

    logger.debug(f"Loaded config from {config_path}")
    return config
