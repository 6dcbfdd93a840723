"""Query normalization and hashing.

Differently-phrased queries often mean the same thing. The normalizer maps
them onto one canonical string so the exact-hash lookup can hit, and the
embedder sees consistent tokens.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from cyx.cache.lexicons import load_lexicons

logger = logging.getLogger(__name__)

# Kept by punctuation stripping in addition to alphanumerics
_KEPT_SYMBOLS = frozenset("-_/")


@dataclass(frozen=True)
class NormalizationConfig:
    """Toggles for each normalization step.

    Attributes:
        lowercase: Convert the query to lowercase.
        remove_punctuation: Replace punctuation (except ``-``, ``_``, ``/``) with spaces.
        expand_abbreviations: Replace known abbreviations with their expansion.
        trim_whitespace: Strip leading and trailing whitespace.
        remove_stopwords: Drop filler words such as "show me how to".
    """

    lowercase: bool = True
    remove_punctuation: bool = False
    expand_abbreviations: bool = True
    trim_whitespace: bool = True
    remove_stopwords: bool = True


def compute_hash(normalized_query: str) -> str:
    """Hash normalized text into a 16-character hex digest.

    Uses a 64-bit BLAKE2b digest, so the value is stable across processes,
    platforms and Python versions.

    Example:
        >>> compute_hash("network mapper nmap scan") == compute_hash("network mapper nmap scan")
        True
    """
    return hashlib.blake2b(normalized_query.encode("utf-8"), digest_size=8).hexdigest()


class QueryNormalizer:
    """Canonicalizes raw query text.

    Pipeline (each step toggled by ``NormalizationConfig``, fixed order):

    1. trim whitespace
    2. lowercase
    3. expand abbreviations
    4. strip punctuation
    5. remove stopwords
    6. collapse whitespace runs (always)

    Example:
        >>> normalizer = QueryNormalizer.from_lexicons(
        ...     abbreviations={"nmap": "network mapper nmap"},
        ...     stopwords={"show", "me"},
        ... )
        >>> normalizer.normalize("Show me NMAP scan")
        'network mapper nmap scan'
    """

    def __init__(
        self,
        config: NormalizationConfig | None = None,
        search_dirs: Iterable[str | Path] | None = None,
    ) -> None:
        """Initialize the normalizer, loading lexicons from disk.

        Args:
            config: Normalization toggles. Uses defaults if not specified.
            search_dirs: Candidate data directories for the lexicon files.

        Raises:
            LexiconError: If a lexicon file cannot be found or parsed.
        """
        abbreviations, stopwords = load_lexicons(search_dirs)
        self._init(config or NormalizationConfig(), abbreviations, stopwords)

    @classmethod
    def from_lexicons(
        cls,
        abbreviations: Mapping[str, str],
        stopwords: Iterable[str],
        config: NormalizationConfig | None = None,
    ) -> QueryNormalizer:
        """Build a normalizer from in-memory lexicons without touching disk."""
        normalizer = cls.__new__(cls)
        normalizer._init(
            config or NormalizationConfig(),
            {k.lower(): v for k, v in abbreviations.items()},
            frozenset(w.lower() for w in stopwords),
        )
        return normalizer

    def _init(
        self,
        config: NormalizationConfig,
        abbreviations: dict[str, str],
        stopwords: frozenset[str],
    ) -> None:
        self.config = config
        self._abbreviations = dict(abbreviations)
        self._stopwords = frozenset(stopwords)

    @property
    def abbreviations(self) -> dict[str, str]:
        return dict(self._abbreviations)

    @property
    def stopwords(self) -> frozenset[str]:
        return self._stopwords

    def normalize(self, query: str) -> str:
        """Normalize a query into its canonical form.

        Args:
            query: Raw query text.

        Returns:
            Normalized text. Empty if the query was empty or only stopwords.
        """
        normalized = query

        if self.config.trim_whitespace:
            normalized = normalized.strip()

        if self.config.lowercase:
            normalized = normalized.lower()

        if self.config.expand_abbreviations:
            normalized = self._expand_abbreviations(normalized)

        if self.config.remove_punctuation:
            normalized = self._strip_punctuation(normalized)

        if self.config.remove_stopwords:
            normalized = self._remove_stopwords(normalized)

        return " ".join(normalized.split())

    def compute_hash(self, normalized_query: str) -> str:
        """Hash normalized text. See ``compute_hash``."""
        return compute_hash(normalized_query)

    def normalize_and_hash(self, query: str) -> tuple[str, str]:
        """Normalize a query and hash the result in one call."""
        normalized = self.normalize(query)
        return normalized, compute_hash(normalized)

    def _expand_abbreviations(self, text: str) -> str:
        expanded = []
        for word in text.split():
            # Match "nmap," and "nmap?" against the "nmap" entry
            expansion = self._abbreviations.get(_strip_trailing_symbols(word))
            expanded.append(expansion if expansion is not None else word)
        return " ".join(expanded)

    @staticmethod
    def _strip_punctuation(text: str) -> str:
        result: list[str] = []
        last_was_space = False

        for ch in text:
            if ch.isalnum() or ch in _KEPT_SYMBOLS:
                result.append(ch)
                last_was_space = False
            elif not last_was_space:
                result.append(" ")
                last_was_space = True

        return "".join(result).strip()

    def _remove_stopwords(self, text: str) -> str:
        return " ".join(word for word in text.split() if word not in self._stopwords)

    def __repr__(self) -> str:
        return (
            f"QueryNormalizer(abbreviations={len(self._abbreviations)}, "
            f"stopwords={len(self._stopwords)}, config={self.config})"
        )


def _strip_trailing_symbols(word: str) -> str:
    end = len(word)
    while end > 0 and not word[end - 1].isalnum():
        end -= 1
    return word[:end]
