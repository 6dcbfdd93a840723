"""Query cache facade.

This module provides the ``QueryCache`` class that sequences a lookup:
normalize, exact-hash match, then embedding similarity. Callers that miss
fetch a fresh answer from their provider and hand it back via ``store()``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from cyx.cache.base import CacheHit, CacheMiss, StorageError
from cyx.cache.embedder import Embedder
from cyx.cache.normalizer import QueryNormalizer
from cyx.cache.storage import CacheStorage

if TYPE_CHECKING:
    from pathlib import Path

    from cyx.config import CyxConfig

logger = logging.getLogger(__name__)


class QueryCache:
    """Semantic cache for model responses.

    Lookups try the exact normalized-text hash first and fall back to
    cosine similarity between feature-hash embeddings.

    Example:
        >>> cache = QueryCache.from_config(load_config())
        >>> result = cache.lookup("Show me an nmap SYN scan")
        >>> if isinstance(result, CacheHit):
        ...     print(result.match, result.value)
        >>> else:
        ...     answer = provider.ask("Show me an nmap SYN scan")
        ...     cache.store("Show me an nmap SYN scan", answer, "groq", "llama-3.3-70b")
    """

    def __init__(
        self,
        storage: CacheStorage,
        normalizer: QueryNormalizer,
        similarity_threshold: float = 0.80,
        ttl_days: int = 30,
        enabled: bool = True,
    ) -> None:
        """Initialize the cache facade.

        Args:
            storage: Open storage handle, closed by ``close()``.
            normalizer: Normalizer used for both lookups and stores.
            similarity_threshold: Minimum cosine similarity for a similar hit.
            ttl_days: Default age window for ``cleanup()``.
            enabled: When False, lookups miss and stores are skipped.

        Raises:
            ValueError: If similarity_threshold is not between 0.0 and 1.0.
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be between 0.0 and 1.0, got {similarity_threshold}"
            )

        self.storage = storage
        self.normalizer = normalizer
        self.similarity_threshold = similarity_threshold
        self.ttl_days = ttl_days
        self.enabled = enabled

        logger.debug(
            f"Initialized QueryCache with threshold={similarity_threshold}, "
            f"ttl_days={ttl_days}, enabled={enabled}"
        )

    @classmethod
    def from_config(
        cls,
        config: CyxConfig,
        cache_dir: str | Path | None = None,
    ) -> QueryCache:
        """Build storage, normalizer and facade from user configuration.

        Raises:
            LexiconError: If the lexicons cannot be loaded.
            StorageError: If the store cannot be opened.
        """
        from cyx.cache.lexicons import default_search_dirs

        normalizer = QueryNormalizer(
            config.normalization.to_config(),
            search_dirs=default_search_dirs(config.data_dir),
        )
        storage = CacheStorage(
            cache_dir if cache_dir is not None else config.resolved_cache_dir(),
            embedder=Embedder(config.cache.embedding_dimensions),
        )
        return cls(
            storage,
            normalizer,
            similarity_threshold=config.cache.similarity_threshold,
            ttl_days=config.cache.ttl_days,
            enabled=config.cache.enabled,
        )

    def lookup(self, query: str) -> CacheHit | CacheMiss:
        """Look up a cached response with full result details.

        Storage failures are logged and reported as a miss so the caller
        can fall through to the provider.

        Example:
            >>> result = cache.lookup("nmap syn scan")
            >>> if isinstance(result, CacheHit):
            ...     print(f"{result.match} hit ({result.similarity:.0%})")
        """
        if not self.enabled:
            return CacheMiss(query=query, reason="disabled")

        start_time = time.time()

        try:
            normalized, query_hash = self.normalizer.normalize_and_hash(query)

            entry = self.storage.get_by_hash(query_hash)
            if entry is not None:
                latency_ms = (time.time() - start_time) * 1000
                logger.debug(f"Exact cache hit for '{query[:50]}'")
                return CacheHit(entry=entry, similarity=1.0, match="exact", latency_ms=latency_ms)

            similar = self.storage.search_similar(
                normalized, threshold=self.similarity_threshold, limit=1
            )
            latency_ms = (time.time() - start_time) * 1000

            if not similar:
                return CacheMiss(query=query, reason="not_found", latency_ms=latency_ms)

            match, similarity = similar[0]
            self.storage.touch(match.query_hash)
            logger.debug(f"Similar cache hit for '{query[:50]}' (similarity={similarity:.3f})")
            return CacheHit(
                entry=match, similarity=similarity, match="similar", latency_ms=latency_ms
            )

        except StorageError as e:
            latency_ms = (time.time() - start_time) * 1000
            logger.warning(f"Cache lookup failed: {e}")
            return CacheMiss(query=query, reason="error", latency_ms=latency_ms)

    def get(self, query: str) -> str | None:
        """Return the cached response for a query, or None on a miss."""
        result = self.lookup(query)
        if isinstance(result, CacheHit):
            return result.value
        return None

    def store(self, query: str, response: str, provider: str, model: str) -> int | None:
        """Cache a fresh response.

        Storage errors propagate; the caller should still show the response.

        Returns:
            Row id of the stored entry, or None when the cache is disabled.
        """
        if not self.enabled:
            return None

        normalized, query_hash = self.normalizer.normalize_and_hash(query)
        row_id = self.storage.store(query, normalized, query_hash, response, provider, model)
        logger.debug(f"Cached response for '{query[:50]}'")
        return row_id

    def cleanup(self, ttl_days: int | None = None) -> int:
        """Remove entries older than ``ttl_days`` (default: configured TTL)."""
        days = self.ttl_days if ttl_days is None else ttl_days
        return self.storage.cleanup_old_entries(days)

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> QueryCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"QueryCache(threshold={self.similarity_threshold}, "
            f"enabled={self.enabled}, storage={self.storage!r})"
        )
