"""SQLite storage for cached queries.

One database file per cache directory. Exact lookups go through the unique
``query_hash`` index; similarity search is a linear scan over the stored
embeddings, which is fine for a single-user local cache.

Schema::

    queries(id, query_original, query_normalized, query_hash UNIQUE, embedding BLOB,
            response, provider, model, created_at, last_accessed, access_count)
    cache_stats(id = 1, hit_count, miss_count)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Literal

from cyx.cache.base import (
    CachedQuery,
    CacheStats,
    EmbeddingError,
    StorageError,
    from_timestamp,
)
from cyx.cache.embedder import Embedder, cosine_similarity, deserialize, serialize

logger = logging.getLogger(__name__)

DB_NAME = "queries.db"

SECONDS_PER_DAY = 86400

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS queries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        query_original TEXT NOT NULL,
        query_normalized TEXT NOT NULL,
        query_hash TEXT NOT NULL UNIQUE,
        embedding BLOB,
        response TEXT NOT NULL,
        provider TEXT NOT NULL,
        model TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        last_accessed INTEGER NOT NULL,
        access_count INTEGER DEFAULT 1
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_query_hash ON queries(query_hash)",
    "CREATE INDEX IF NOT EXISTS idx_created_at ON queries(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_access_count ON queries(access_count)",
    """
    CREATE TABLE IF NOT EXISTS cache_stats (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        hit_count INTEGER DEFAULT 0,
        miss_count INTEGER DEFAULT 0
    )
    """,
    "INSERT OR IGNORE INTO cache_stats (id, hit_count, miss_count) VALUES (1, 0, 0)",
)

_COLUMNS = (
    "id, query_original, query_normalized, query_hash, embedding, response, "
    "provider, model, created_at, last_accessed, access_count"
)

_UPSERT = """
    INSERT INTO queries (
        query_original, query_normalized, query_hash, embedding, response,
        provider, model, created_at, last_accessed, access_count
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
    ON CONFLICT(query_hash) DO UPDATE SET
        embedding = excluded.embedding,
        response = excluded.response,
        provider = excluded.provider,
        model = excluded.model,
        last_accessed = excluded.last_accessed,
        access_count = access_count + 1
"""


def _now() -> int:
    return int(time.time())


class CacheStorage:
    """Persistent store for cached query responses.

    Each instance owns its own connection, so several stores (for example
    in tests) can be open at the same time.

    Example:
        >>> with CacheStorage("~/.cache/cyx") as storage:
        ...     normalized, digest = normalizer.normalize_and_hash("nmap syn scan")
        ...     storage.store("nmap syn scan", normalized, digest, "nmap -sS ...", "groq", "llama")
        ...     storage.get_by_hash(digest).response
        'nmap -sS ...'
    """

    def __init__(
        self,
        cache_dir: str | Path,
        embedder: Embedder | Literal[False] | None = None,
        db_name: str = DB_NAME,
    ) -> None:
        """Open (creating if absent) the store in ``cache_dir``.

        Args:
            cache_dir: Directory holding the database file. Created if missing.
            embedder: Embedder used for similarity search. Defaults to a
                256-dimension ``Embedder``; pass False to store rows without
                embeddings.
            db_name: Database file name inside ``cache_dir``.

        Raises:
            StorageError: If the directory or database cannot be opened.
        """
        self.cache_dir = Path(cache_dir).expanduser()
        self.db_path = self.cache_dir / db_name

        if embedder is False:
            self._embedder: Embedder | None = None
        else:
            self._embedder = embedder or Embedder()

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                self.db_path, isolation_level=None
            )
            self._initialize_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(
                f"Failed to open cache database {self.db_path}: {e}", operation="open"
            ) from e

        logger.debug(f"Opened cache database at {self.db_path}")

    def _initialize_schema(self) -> None:
        conn = self._connection()
        for statement in _SCHEMA:
            conn.execute(statement)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Cache storage is closed", operation="connect")
        return self._conn

    def _execute(self, operation: str, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._connection().execute(sql, params)
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: a parameter outside SQLite's 64-bit INTEGER range
            raise StorageError(f"Cache {operation} failed: {e}", operation=operation) from e

    @property
    def embedder(self) -> Embedder | None:
        return self._embedder

    def close(self) -> None:
        """Close the underlying connection. Safe to call twice."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> CacheStorage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _embed_blob(self, query_normalized: str) -> bytes | None:
        if self._embedder is None:
            return None
        try:
            return serialize(self._embedder.embed(query_normalized))
        except Exception as e:
            # Exact-hash lookups still work without a vector
            logger.warning(f"Failed to embed query, storing without embedding: {e}")
            return None

    def store(
        self,
        query_original: str,
        query_normalized: str,
        query_hash: str,
        response: str,
        provider: str,
        model: str,
    ) -> int:
        """Insert an entry, or overwrite the one with the same hash.

        On overwrite the response, provider, model, embedding and
        last_accessed are replaced and access_count is incremented. The
        original query, normalized text and created_at are kept.

        Returns:
            The row id of the inserted or updated entry.
        """
        now = _now()
        embedding = self._embed_blob(query_normalized)

        self._execute(
            "store",
            _UPSERT,
            (
                query_original,
                query_normalized,
                query_hash,
                embedding,
                response,
                provider,
                model,
                now,
                now,
            ),
        )

        # lastrowid is unreliable after the UPDATE branch of an upsert
        row = self._execute(
            "store", "SELECT id FROM queries WHERE query_hash = ?", (query_hash,)
        ).fetchone()
        if row is None:
            raise StorageError(f"Entry {query_hash} vanished after store", operation="store")

        logger.debug(f"Stored cache entry {query_hash} (id={row[0]})")
        return int(row[0])

    def touch(self, query_hash: str) -> bool:
        """Record an access on an entry without changing hit/miss counters.

        Returns:
            True if the entry exists.
        """
        cursor = self._execute(
            "touch",
            "UPDATE queries SET last_accessed = ?, access_count = access_count + 1 "
            "WHERE query_hash = ?",
            (_now(), query_hash),
        )
        return cursor.rowcount > 0

    def _increment_counter(self, column: Literal["hit_count", "miss_count"]) -> None:
        self._execute(
            "stats", f"UPDATE cache_stats SET {column} = {column} + 1 WHERE id = 1"
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def _decode_embedding(row: tuple[Any, ...]) -> list[float] | None:
        if row[4] is None:
            return None
        try:
            return deserialize(row[4])
        except EmbeddingError as e:
            logger.debug(f"Ignoring stored embedding of {row[3]}: {e}")
            return None

    @classmethod
    def _row_to_entry(
        cls, row: tuple[Any, ...], embedding: list[float] | None = None
    ) -> CachedQuery:
        if embedding is None:
            embedding = cls._decode_embedding(row)
        return CachedQuery(
            id=row[0],
            query_original=row[1],
            query_normalized=row[2],
            query_hash=row[3],
            embedding=embedding,
            response=row[5],
            provider=row[6],
            model=row[7],
            created_at=from_timestamp(row[8]),
            last_accessed=from_timestamp(row[9]),
            access_count=row[10],
        )

    def get_by_hash(self, query_hash: str) -> CachedQuery | None:
        """Exact lookup by normalized-text hash.

        A hit records an access on the entry and bumps the global hit
        counter; a miss bumps the miss counter.

        Returns:
            The entry as it was before this access was recorded, or None.
        """
        row = self._execute(
            "get_by_hash",
            f"SELECT {_COLUMNS} FROM queries WHERE query_hash = ?",
            (query_hash,),
        ).fetchone()

        if row is None:
            self._increment_counter("miss_count")
            return None

        entry = self._row_to_entry(row)
        self.touch(query_hash)
        self._increment_counter("hit_count")
        return entry

    def search_similar(
        self,
        query_normalized: str,
        threshold: float = 0.80,
        limit: int = 1,
    ) -> list[tuple[CachedQuery, float]]:
        """Find entries whose embedding is close to the query's.

        Scans every row with an embedding in id order, keeps those scoring
        at least ``threshold`` and returns them best first. Rows whose blob
        cannot be decoded are skipped.

        Args:
            query_normalized: Normalized query text.
            threshold: Minimum cosine similarity.
            limit: Maximum number of results.

        Returns:
            List of (entry, similarity) sorted by descending similarity.
        """
        if self._embedder is None or limit <= 0:
            return []

        query_embedding = self._embedder.embed(query_normalized)

        rows = self._execute(
            "search_similar",
            f"SELECT {_COLUMNS} FROM queries WHERE embedding IS NOT NULL ORDER BY id",
        ).fetchall()

        results: list[tuple[CachedQuery, float]] = []
        for row in rows:
            try:
                embedding = deserialize(row[4])
            except EmbeddingError as e:
                logger.warning(f"Skipping cache entry {row[3]}: {e}")
                continue

            similarity = cosine_similarity(query_embedding, embedding)
            if similarity >= threshold:
                results.append((self._row_to_entry(row, embedding), similarity))

        # sort() is stable, so equal scores keep scan order
        results.sort(key=lambda item: item[1], reverse=True)
        return results[:limit]

    def list_all(self, limit: int | None = None) -> list[CachedQuery]:
        """List entries, most recently accessed first."""
        sql = f"SELECT {_COLUMNS} FROM queries ORDER BY last_accessed DESC, id DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (max(limit, 0),)

        rows = self._execute("list_all", sql, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def stats(self) -> CacheStats:
        """Aggregate counters for the whole store."""
        total_entries, total_size, oldest, newest = self._execute(
            "stats",
            "SELECT COUNT(*), "
            "COALESCE(SUM(LENGTH(response) + LENGTH(query_original)), 0), "
            "MIN(created_at), MAX(created_at) FROM queries",
        ).fetchone()

        hit_count, miss_count = self._execute(
            "stats", "SELECT hit_count, miss_count FROM cache_stats WHERE id = 1"
        ).fetchone()

        return CacheStats(
            total_entries=total_entries,
            total_size_bytes=total_size,
            hit_count=hit_count,
            miss_count=miss_count,
            oldest_entry=from_timestamp(oldest),
            newest_entry=from_timestamp(newest),
        )

    # -------------------------------------------------------------------------
    # Eviction
    # -------------------------------------------------------------------------

    def remove_by_hash(self, query_hash: str) -> bool:
        """Delete one entry. Returns whether anything was deleted."""
        cursor = self._execute(
            "remove_by_hash", "DELETE FROM queries WHERE query_hash = ?", (query_hash,)
        )
        return cursor.rowcount > 0

    def clear(self) -> int:
        """Delete every entry and reset hit/miss counters.

        Returns:
            Number of entries deleted.
        """
        cursor = self._execute("clear", "DELETE FROM queries")
        self._execute("clear", "UPDATE cache_stats SET hit_count = 0, miss_count = 0 WHERE id = 1")
        count = cursor.rowcount
        logger.info(f"Cleared {count} entries from cache")
        return count

    def cleanup_old_entries(self, max_age_days: int) -> int:
        """Delete entries created more than ``max_age_days`` ago.

        Hit/miss counters are left untouched.

        Returns:
            Number of entries deleted.
        """
        cutoff = _now() - max_age_days * SECONDS_PER_DAY
        cursor = self._execute(
            "cleanup_old_entries", "DELETE FROM queries WHERE created_at < ?", (cutoff,)
        )
        count = cursor.rowcount
        if count > 0:
            logger.info(f"Evicted {count} cache entries older than {max_age_days} days")
        return count

    def __repr__(self) -> str:
        return f"CacheStorage(db_path={str(self.db_path)!r})"
