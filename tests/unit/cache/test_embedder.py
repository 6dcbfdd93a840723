"""Tests for the feature-hash embedder and vector helpers."""

from __future__ import annotations

import math
import struct

import numpy as np
import pytest

from cyx.cache import Embedder, EmbeddingError, cosine_similarity
from cyx.cache.embedder import DEFAULT_DIMENSIONS, deserialize, serialize


class TestEmbedder:
    """Tests for Embedder.embed."""

    def test_default_dimensions(self):
        """Vectors have 256 slots by default."""
        assert DEFAULT_DIMENSIONS == 256
        assert len(Embedder().embed("nmap scan")) == 256

    def test_custom_dimensions(self):
        """The constructor fixes the vector length."""
        assert len(Embedder(64).embed("nmap scan")) == 64

    def test_invalid_dimensions(self):
        """Zero or negative dimensions are rejected."""
        with pytest.raises(ValueError):
            Embedder(0)

    def test_deterministic(self):
        """Separate instances embed identically."""
        text = "network mapper nmap stealth synchronize scan"
        assert Embedder(128).embed(text) == Embedder(128).embed(text)

    def test_unit_length(self):
        """Non-empty text yields an L2-normalized vector."""
        vector = Embedder().embed_array("sql injection union select")
        assert vector.dtype == np.float32
        assert math.isclose(float(np.linalg.norm(vector)), 1.0, rel_tol=1e-5)

    def test_empty_text_is_zero_vector(self):
        """Empty text has no features and stays all zeros."""
        assert not any(Embedder(32).embed(""))

    def test_case_insensitive(self):
        """Embedding lowercases tokens first."""
        embedder = Embedder(64)
        assert embedder.embed("NMAP Scan") == embedder.embed("nmap scan")

    def test_small_dimensions_skip_stat_slots(self):
        """Ten or fewer slots hold only token and trigram features."""
        vector = Embedder(4).embed("ab")
        # One two-letter token, no trigrams: exactly one non-zero slot
        assert sum(1 for v in vector if v != 0.0) == 1

    def test_stat_slots_populated(self):
        """With more than ten slots, the last two carry length statistics."""
        vector = Embedder(64).embed_array("abcd efgh")
        unnormalized_len, unnormalized_count = 4 / 10, 2 / 20
        ratio = vector[-1] / vector[-2]
        assert math.isclose(float(ratio), unnormalized_len / unnormalized_count, rel_tol=1e-3)

    def test_similar_text_scores_higher(self):
        """Reworded queries land closer than unrelated ones."""
        embedder = Embedder()
        base = embedder.embed("network mapper nmap stealth synchronize scan")
        reworded = embedder.embed("network mapper nmap scan")
        unrelated = embedder.embed("sql injection union payload")
        assert cosine_similarity(base, reworded) > cosine_similarity(base, unrelated)


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical(self):
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_mismatched_lengths(self):
        """Different lengths mean no relation rather than an error."""
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0

    def test_zero_vector(self):
        """A zero-norm vector scores 0.0."""
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_accepts_numpy_arrays(self):
        a = np.array([1.0, 1.0], dtype=np.float32)
        assert cosine_similarity(a, a) == pytest.approx(1.0)


class TestSerialization:
    """Tests for embedding blob encoding."""

    def test_little_endian_float32(self):
        """Each component is four little-endian bytes."""
        assert serialize([1.0, -0.5]) == struct.pack("<2f", 1.0, -0.5)

    def test_decode_written_blob(self):
        blob = serialize([0.25, 0.5, -1.0])
        assert len(blob) == 12
        assert deserialize(blob) == [0.25, 0.5, -1.0]

    def test_empty_blob(self):
        with pytest.raises(EmbeddingError):
            deserialize(b"")

    def test_truncated_blob(self):
        """A length that is not a multiple of four is rejected."""
        with pytest.raises(EmbeddingError, match="Malformed"):
            deserialize(b"\x00" * 5)
