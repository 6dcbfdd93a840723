"""Base types for the query cache.

This module provides the exceptions and data structures shared by the
normalizer, the embedder, the storage layer and the cache facade.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal


class CacheError(Exception):
    """Base exception for cache errors."""

    pass


class LexiconError(CacheError):
    """Raised when normalization lexicons cannot be located or parsed."""

    pass


class StorageError(CacheError):
    """Error raised by the embedded store.

    Attributes:
        operation: Name of the storage operation that failed.
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class EmbeddingError(CacheError):
    """Raised when a vector cannot be computed or decoded."""

    pass


def from_timestamp(value: int | None) -> datetime | None:
    """Convert integer epoch seconds to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass
class CachedQuery:
    """A persisted cache entry.

    Attributes:
        id: Row id assigned by the store on insert.
        query_original: Query text exactly as the user typed it.
        query_normalized: Canonical form produced by the normalizer.
        query_hash: Hex digest of the normalized text, unique per entry.
        response: The cached model answer.
        provider: Backend that produced the response.
        model: Model that produced the response.
        created_at: When the entry was first stored (UTC).
        last_accessed: Last hit or overwrite (UTC).
        access_count: 1 on insert, incremented on every hit and overwrite.
        embedding: Feature-hash vector of the normalized text. None when the row
            was stored without one or its blob cannot be decoded.

    Example:
        >>> entry = storage.get_by_hash(normalizer.compute_hash("nmap scan"))
        >>> entry.response if entry else None
    """

    id: int
    query_original: str
    query_normalized: str
    query_hash: str
    response: str
    provider: str
    model: str
    created_at: datetime
    last_accessed: datetime
    access_count: int = 1
    embedding: list[float] | None = None

    @property
    def size_bytes(self) -> int:
        """Approximate size as counted by cache statistics."""
        return len(self.query_original) + len(self.response)

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "query_original": self.query_original,
            "query_normalized": self.query_normalized,
            "query_hash": self.query_hash,
            "response": self.response,
            "provider": self.provider,
            "model": self.model,
            "created_at": self.created_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
            "access_count": self.access_count,
        }


@dataclass
class CacheHit:
    """Result of a successful cache lookup.

    Attributes:
        entry: The matched cache entry.
        similarity: Cosine similarity to the stored query (1.0 for exact hits).
        match: Whether the hash matched exactly or only the embedding did.
        latency_ms: Time taken for the lookup in milliseconds.
    """

    entry: CachedQuery
    similarity: float
    match: Literal["exact", "similar"] = "exact"
    latency_ms: float = 0.0

    @property
    def value(self) -> str:
        """Get the cached response."""
        return self.entry.response


@dataclass
class CacheMiss:
    """Result of a cache lookup that found no match.

    Attributes:
        query: The query that was searched.
        reason: Why the cache missed.
        latency_ms: Time taken for the lookup in milliseconds.
    """

    query: str
    reason: Literal["not_found", "disabled", "error"] = "not_found"
    latency_ms: float = 0.0


@dataclass
class CacheStats:
    """Aggregate statistics about the store.

    Attributes:
        total_entries: Number of rows in the store.
        total_size_bytes: Sum of original-query and response lengths.
        hit_count: Exact-hash hits since the last clear.
        miss_count: Exact-hash misses since the last clear.
        oldest_entry: Earliest created_at, None when empty.
        newest_entry: Latest created_at, None when empty.
    """

    total_entries: int = 0
    total_size_bytes: int = 0
    hit_count: int = 0
    miss_count: int = 0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None

    @property
    def total_requests(self) -> int:
        return self.hit_count + self.miss_count

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate (0.0 to 1.0)."""
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.hit_count / total
