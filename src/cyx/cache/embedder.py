"""Model-free text embeddings for approximate cache matching.

The embedder uses feature hashing: tokens and character trigrams are hashed
into a fixed number of slots. It captures lexical overlap, not meaning, which
is enough to catch reworded queries once the exact-hash lookup has missed.

Slots are chosen with BLAKE2b rather than ``hash()``, whose output is salted
per process. Stored vectors therefore stay comparable across runs.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence

import numpy as np

from cyx.cache.base import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 256

# Weight added for every character trigram
TRIGRAM_WEIGHT = 0.5

# Serialized vectors are little-endian float32
_BLOB_DTYPE = np.dtype("<f4")


def _slot(feature: str, dimensions: int) -> int:
    digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "little") % dimensions


class Embedder:
    """Deterministic feature-hash embedder.

    For a text split into whitespace tokens:

    - token ``i`` adds ``1 / (i + 1)`` to its slot (earlier tokens weigh more)
    - each trigram of a token with 3+ characters adds ``0.5`` to its slot
    - with more than 10 dimensions, the last two slots hold the mean token
      length / 10 and the token count / 20
    - the vector is L2-normalized

    Example:
        >>> embedder = Embedder(dimensions=64)
        >>> vector = embedder.embed("network mapper nmap scan")
        >>> len(vector)
        64
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be at least 1, got {dimensions}")
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        """Embed text into a unit-length vector of ``self.dimensions`` floats."""
        return self.embed_array(text).tolist()

    def embed_array(self, text: str) -> np.ndarray:
        """Embed text into a float32 numpy array."""
        words = text.lower().split()
        vector = np.zeros(self.dimensions, dtype=np.float32)

        for i, word in enumerate(words):
            vector[_slot(word, self.dimensions)] += 1.0 / (i + 1)

        for word in words:
            if len(word) >= 3:
                for i in range(len(word) - 2):
                    vector[_slot(word[i : i + 3], self.dimensions)] += TRIGRAM_WEIGHT

        if self.dimensions > 10:
            avg_word_len = sum(len(w) for w in words) / len(words) if words else 0.0
            vector[self.dimensions - 1] = avg_word_len / 10.0
            vector[self.dimensions - 2] = len(words) / 20.0

        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector /= norm

        return vector

    def __repr__(self) -> str:
        return f"Embedder(dimensions={self.dimensions})"


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm,
    meaning "no relation" rather than an error.

    Example:
        >>> cosine_similarity([1.0, 0.0], [0.0, 1.0])
        0.0
    """
    if len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def serialize(vector: Sequence[float]) -> bytes:
    """Encode a vector as little-endian float32 bytes for the store."""
    return np.asarray(vector, dtype=_BLOB_DTYPE).tobytes()


def deserialize(blob: bytes) -> list[float]:
    """Decode a vector written by ``serialize``.

    Raises:
        EmbeddingError: If the blob is empty or not a whole number of floats.
    """
    if not blob or len(blob) % _BLOB_DTYPE.itemsize:
        raise EmbeddingError(f"Malformed embedding blob ({len(blob)} bytes)")
    return np.frombuffer(blob, dtype=_BLOB_DTYPE).astype(np.float64).tolist()
