"""Semantic query cache for cyx.

This module avoids repeated model calls by recognizing that differently
phrased queries often mean the same thing.

Key Components:
- QueryNormalizer: Canonicalizes query text (abbreviations, stopwords, case)
- Embedder: Model-free feature-hash embeddings for approximate matching
- CacheStorage: SQLite store with exact and similarity lookups
- QueryCache: Facade running exact-then-similar lookups

Example - Basic usage:
    >>> from cyx.cache import QueryCache
    >>> from cyx.config import load_config
    >>>
    >>> cache = QueryCache.from_config(load_config())
    >>> response = cache.get("Show me how to do an nmap SYN scan")
    >>> if response is None:
    ...     response = ask_provider("Show me how to do an nmap SYN scan")
    ...     cache.store("Show me how to do an nmap SYN scan", response, "groq", "llama")

Example - Storage only:
    >>> from cyx.cache import CacheStorage, QueryNormalizer
    >>>
    >>> normalizer = QueryNormalizer()
    >>> normalized, digest = normalizer.normalize_and_hash("NMAP SYN scan!")
    >>> with CacheStorage("/tmp/cyx-cache") as storage:
    ...     storage.search_similar(normalized, threshold=0.8, limit=3)
"""

from __future__ import annotations

from cyx.cache.base import (
    CachedQuery,
    CacheError,
    CacheHit,
    CacheMiss,
    CacheStats,
    EmbeddingError,
    LexiconError,
    StorageError,
)
from cyx.cache.embedder import Embedder, cosine_similarity
from cyx.cache.normalizer import NormalizationConfig, QueryNormalizer, compute_hash
from cyx.cache.semantic import QueryCache
from cyx.cache.storage import CacheStorage

__all__ = [
    # Main class
    "QueryCache",
    # Components
    "QueryNormalizer",
    "NormalizationConfig",
    "Embedder",
    "CacheStorage",
    # Data structures
    "CachedQuery",
    "CacheHit",
    "CacheMiss",
    "CacheStats",
    # Errors
    "CacheError",
    "LexiconError",
    "StorageError",
    "EmbeddingError",
    # Functions
    "compute_hash",
    "cosine_similarity",
]
