"""Lexicon loading for query normalization.

The normalizer depends on two static lexicons shipped as JSON:

- ``normalization/abbreviations.json``: ``{"abbreviations": {"nmap": "network mapper nmap"}}``
- ``normalization/stopwords.json``: ``{"stopwords": ["show", "me", ...]}``

Files are resolved against a prioritized list of candidate directories;
the first directory that contains the file wins.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from cyx.cache.base import LexiconError

logger = logging.getLogger(__name__)

ABBREVIATIONS_FILE = "normalization/abbreviations.json"
STOPWORDS_FILE = "normalization/stopwords.json"

# Bundled with the package
PACKAGE_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def default_search_dirs(data_dir: str | Path | None = None) -> list[Path]:
    """Build the candidate data directories in priority order.

    Order: ``$CYX_DATA_DIR``, the configured ``data_dir``, ``./data`` under the
    working directory, then the data bundled with the package.
    """
    dirs: list[Path] = []

    env_dir = os.environ.get("CYX_DATA_DIR")
    if env_dir:
        dirs.append(Path(env_dir).expanduser())

    if data_dir is not None:
        dirs.append(Path(data_dir).expanduser())

    dirs.append(Path.cwd() / "data")
    dirs.append(PACKAGE_DATA_DIR)
    return dirs


def find_data_file(
    relative_path: str,
    search_dirs: Iterable[str | Path] | None = None,
) -> Path:
    """Locate a data file in the first candidate directory that has it.

    Args:
        relative_path: Path of the file relative to a data directory.
        search_dirs: Candidate directories. Uses ``default_search_dirs()`` if None.

    Returns:
        Path to the existing file.

    Raises:
        LexiconError: If no candidate directory contains the file.
    """
    candidates = list(search_dirs) if search_dirs is not None else default_search_dirs()

    for directory in candidates:
        path = Path(directory) / relative_path
        if path.is_file():
            logger.debug(f"Resolved {relative_path} to {path}")
            return path

    searched = ", ".join(str(Path(d)) for d in candidates)
    raise LexiconError(f"Could not find data file: {relative_path} (searched: {searched})")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise LexiconError(f"Failed to read lexicon file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LexiconError(f"Failed to parse lexicon file {path}: {e}") from e


def load_abbreviations(path: str | Path) -> dict[str, str]:
    """Load the abbreviation dictionary from a JSON file.

    Keys are lowercased so lookups match lowercased query tokens.

    Raises:
        LexiconError: If the file is unreadable or not shaped as expected.
    """
    data = _read_json(Path(path))
    mapping = data.get("abbreviations") if isinstance(data, dict) else None

    if not isinstance(mapping, dict):
        raise LexiconError(f"Expected an 'abbreviations' object in {path}")

    abbreviations: dict[str, str] = {}
    for key, value in mapping.items():
        if not isinstance(value, str):
            raise LexiconError(f"Abbreviation '{key}' in {path} must map to a string")
        abbreviations[str(key).lower()] = value

    return abbreviations


def load_stopwords(path: str | Path) -> frozenset[str]:
    """Load the stopword set from a JSON file.

    Raises:
        LexiconError: If the file is unreadable or not shaped as expected.
    """
    data = _read_json(Path(path))
    words = data.get("stopwords") if isinstance(data, dict) else None

    if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
        raise LexiconError(f"Expected a 'stopwords' list of strings in {path}")

    return frozenset(w.lower() for w in words)


def load_lexicons(
    search_dirs: Iterable[str | Path] | None = None,
) -> tuple[dict[str, str], frozenset[str]]:
    """Resolve and load both lexicons.

    Returns:
        Tuple of (abbreviations, stopwords).
    """
    dirs = list(search_dirs) if search_dirs is not None else None
    abbreviations = load_abbreviations(find_data_file(ABBREVIATIONS_FILE, dirs))
    stopwords = load_stopwords(find_data_file(STOPWORDS_FILE, dirs))

    logger.debug(
        f"Loaded {len(abbreviations)} abbreviations and {len(stopwords)} stopwords"
    )
    return abbreviations, stopwords
