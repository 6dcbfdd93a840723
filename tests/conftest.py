"""
Root conftest.py for cyx tests.

This file provides:
1. Common pytest markers for test categorization
2. Environment isolation so tests never touch the real XDG directories
3. Shared cache fixtures (normalizer, storage, facade)
"""

from __future__ import annotations

import logging

import pytest

from cyx.cache import CacheStorage, Embedder, QueryCache, QueryNormalizer
from cyx.logging import ROOT_LOGGER

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")

        if "/tests/unit/cache/" in norm:
            item.add_marker(pytest.mark.cache)
        if "/tests/unit/cli/" in norm:
            item.add_marker(pytest.mark.cli)


def pytest_configure(config):
    """Register custom markers."""
    for name, desc in [
        ("cache", "Normalizer, embedder, storage and cache facade tests"),
        ("cli", "Command-line interface tests"),
        ("slow", "Slow-running tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point every cyx directory at a per-test temporary location."""
    monkeypatch.setenv("CYX_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("CYX_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("CYX_DATA_DIR", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("XDG_CACHE_HOME", raising=False)


@pytest.fixture(autouse=True)
def restore_cyx_logger():
    """Undo handler and level changes made by configure_logging."""
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


# =============================================================================
# CACHE FIXTURES
# =============================================================================

ABBREVIATIONS = {
    "nmap": "network mapper nmap",
    "syn": "stealth synchronize",
    "sqli": "sql injection",
    "xss": "cross site scripting",
    "privesc": "privilege escalation",
}

STOPWORDS = {"show", "me", "how", "to", "do", "a", "an", "the", "for", "what", "is"}


@pytest.fixture
def normalizer() -> QueryNormalizer:
    """Normalizer with a small in-memory lexicon."""
    return QueryNormalizer.from_lexicons(ABBREVIATIONS, STOPWORDS)


@pytest.fixture
def storage(tmp_path):
    """Open store in a temporary directory, closed after the test."""
    with CacheStorage(tmp_path / "store", embedder=Embedder(256)) as store:
        yield store


@pytest.fixture
def query_cache(storage, normalizer):
    """Cache facade over the temporary store."""
    return QueryCache(storage, normalizer, similarity_threshold=0.80)
