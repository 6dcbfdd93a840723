"""Tests for configuration loading and directory resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from cyx.cache import NormalizationConfig
from cyx.config import (
    CacheConfig,
    ConfigError,
    CyxConfig,
    NormalizationSettings,
    default_cache_dir,
    default_config_dir,
    default_config_path,
    load_config,
)

# =============================================================================
# Directories
# =============================================================================


class TestDirectories:
    """Tests for XDG-style directory resolution."""

    def test_env_overrides(self, tmp_path):
        """CYX_* variables are set by the autouse fixture."""
        assert default_config_dir() == tmp_path / "config"
        assert default_cache_dir() == tmp_path / "cache"
        assert default_config_path() == tmp_path / "config" / "config.toml"

    def test_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CYX_CONFIG_DIR")
        monkeypatch.delenv("CYX_CACHE_DIR")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))

        assert default_config_dir() == tmp_path / "xdg-config" / "cyx"
        assert default_cache_dir() == tmp_path / "xdg-cache" / "cyx"

    def test_home_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CYX_CACHE_DIR")
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert default_cache_dir() == tmp_path / ".cache" / "cyx"


# =============================================================================
# Models
# =============================================================================


class TestModels:
    """Tests for the pydantic configuration models."""

    def test_defaults(self):
        config = CyxConfig()
        assert config.provider == "groq"
        assert config.cache.enabled is True
        assert config.cache.ttl_days == 30
        assert config.cache.similarity_threshold == 0.80
        assert config.cache.embedding_dimensions == 256
        assert config.normalization.remove_punctuation is False

    def test_threshold_bounds(self):
        with pytest.raises(ValueError):
            CacheConfig(similarity_threshold=1.5)

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            CacheConfig(ttl_days=-1)

    def test_normalization_to_config(self):
        settings = NormalizationSettings(remove_punctuation=True, remove_stopwords=False)
        assert settings.to_config() == NormalizationConfig(
            remove_punctuation=True, remove_stopwords=False
        )

    def test_resolved_cache_dir(self, tmp_path):
        assert CyxConfig().resolved_cache_dir() == tmp_path / "cache"
        assert CyxConfig(cache_dir=tmp_path / "x").resolved_cache_dir() == tmp_path / "x"


# =============================================================================
# Loading
# =============================================================================


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self):
        assert load_config() == CyxConfig()

    def test_loads_default_path(self):
        path = default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text('provider = "ollama"\n\n[cache]\nttl_days = 7\n')

        config = load_config()

        assert config.provider == "ollama"
        assert config.cache.ttl_days == 7
        assert config.cache.similarity_threshold == 0.80

    def test_loads_explicit_path(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            "[cache]\n"
            "enabled = false\n"
            "similarity_threshold = 0.9\n"
            "\n"
            "[normalization]\n"
            "remove_punctuation = true\n"
        )

        config = load_config(path)

        assert config.cache.enabled is False
        assert config.cache.similarity_threshold == 0.9
        assert config.normalization.remove_punctuation is True

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('theme = "dark"\n\n[cache]\nshiny = 1\n')
        assert load_config(path) == CyxConfig()

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[cache\n")
        with pytest.raises(ConfigError, match="Failed to parse") as exc_info:
            load_config(path)
        assert exc_info.value.path == path

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('provider = "openai"\n')
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(path)
